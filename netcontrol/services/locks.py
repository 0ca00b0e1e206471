"""Per-resource locks serializing configuration of the same interface or radio."""

import asyncio
from contextlib import asynccontextmanager

import structlog

logger = structlog.get_logger()


class KeyedLocks:
    """One asyncio.Lock per key (interface name, radio name, "timesync")."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def _get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._get(key)
        if lock.locked():
            logger.info("resource_busy_waiting", resource=key)
        async with lock:
            yield
