"""Bounded verify-with-retry policy shared by the configurator, WiFi connector and hotspot."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class RetryOutcome:
    succeeded: bool
    attempts: int


@dataclass
class RetryPolicy:
    """Fixed number of attempts with a settle delay before each check and a
    fixed backoff after each recovery action."""

    max_attempts: int = 3
    settle_delay: float = 2.0
    backoff: float = 5.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    async def run(
        self,
        check: Callable[[], Awaitable[bool]],
        recover: Callable[[], Awaitable[None]] | None = None,
        name: str = "operation",
    ) -> RetryOutcome:
        """Run `check` until it returns True or attempts run out.

        `recover` runs between a failed attempt and the next one (never after the
        last attempt). Exceptions raised by `check` count as a failed attempt;
        exceptions raised by `recover` are logged and the loop continues.
        """
        for attempt in range(1, self.max_attempts + 1):
            await asyncio.sleep(self.settle_delay)
            try:
                ok = await check()
            except Exception as e:
                logger.warning("retry_check_error", name=name, attempt=attempt, error=str(e))
                ok = False

            if ok:
                logger.info("retry_check_passed", name=name, attempt=attempt)
                return RetryOutcome(succeeded=True, attempts=attempt)

            if attempt < self.max_attempts:
                logger.warning(
                    "retry_check_failed",
                    name=name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                )
                if recover is not None:
                    try:
                        await recover()
                    except Exception as e:
                        logger.error("retry_recover_failed", name=name, attempt=attempt, error=str(e))
                await asyncio.sleep(self.backoff)

        logger.warning("retry_exhausted", name=name, attempts=self.max_attempts)
        return RetryOutcome(succeeded=False, attempts=self.max_attempts)

    async def wait_until(
        self,
        check: Callable[[], Awaitable[bool]],
        name: str = "condition",
    ) -> bool:
        """Poll `check` without a recovery action. Used for bounded radio waits."""
        outcome = await self.run(check, recover=None, name=name)
        return outcome.succeeded
