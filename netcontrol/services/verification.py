"""Post-apply link verification with bounded deactivate/reactivate retries."""

import asyncio

import structlog

from netcontrol.core.exceptions import PostValidationError
from netcontrol.core.executor import ExecError
from netcontrol.services.network_manager import NetworkManagerClient
from netcontrol.services.retry import RetryOutcome, RetryPolicy

logger = structlog.get_logger()


class LinkVerifier:
    """Confirms an activated profile actually came up.

    A link is up when the device reports "connected" and has an IPv4 address.
    The gateway ping is informational only.
    """

    def __init__(
        self,
        network_manager: NetworkManagerClient,
        policy: RetryPolicy,
        reactivate_pause: float = 1.0,
    ):
        self._nm = network_manager
        self._policy = policy
        self._reactivate_pause = reactivate_pause

    @property
    def max_attempts(self) -> int:
        return self._policy.max_attempts

    async def is_up(self, iface: str) -> bool:
        state = await self._nm.device_state(iface)
        if state != "connected":
            logger.warning("link_not_connected", interface=iface, state=state)
            return False

        ipv4, _ = await self._nm.addresses(iface)
        if not ipv4:
            logger.warning("link_no_ipv4", interface=iface)
            return False

        gateway = await self._nm.default_gateway(iface)
        if gateway:
            if await self._nm.ping(gateway):
                logger.info("gateway_reachable", interface=iface, gateway=gateway)
            else:
                logger.warning("gateway_unreachable", interface=iface, gateway=gateway)

        logger.info("link_verified", interface=iface, ipv4=ipv4)
        return True

    async def _reactivate(self, profile: str) -> None:
        try:
            await self._nm.deactivate(profile)
        except ExecError as e:
            logger.warning("profile_deactivate_failed", profile=profile, error=e.stderr)
        await asyncio.sleep(self._reactivate_pause)
        try:
            await self._nm.activate(profile)
            logger.info("profile_reactivated", profile=profile)
        except ExecError as e:
            logger.error("profile_reactivate_failed", profile=profile, error=e.stderr)

    async def verify(self, iface: str, profile: str) -> RetryOutcome:
        """Verify `iface` came up, reactivating `profile` between failed attempts.

        Raises:
            PostValidationError when every attempt failed.
        """
        outcome = await self._policy.run(
            check=lambda: self.is_up(iface),
            recover=lambda: self._reactivate(profile),
            name=f"verify_link:{iface}",
        )
        if not outcome.succeeded:
            raise PostValidationError(
                f"Interface {iface} did not come up after {outcome.attempts} attempts.",
                attempts=outcome.attempts,
                details={"interface": iface, "profile": profile},
            )
        return outcome
