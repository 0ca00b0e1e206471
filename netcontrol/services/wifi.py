"""WiFi client connector — radio enablement, join, disconnect and scan."""

import asyncio

import structlog

from netcontrol.core.exceptions import (
    ApplyError,
    CommandUnavailableError,
    InvalidConfigError,
    PreconditionError,
)
from netcontrol.core.executor import ExecError
from netcontrol.schemas.wifi import (
    WifiConnectResult,
    WifiDisconnectResult,
    WifiJoinRequest,
    WifiNetwork,
)
from netcontrol.services import nmcli
from netcontrol.services.network_manager import NetworkManagerClient
from netcontrol.services.retry import RetryPolicy
from netcontrol.services.verification import LinkVerifier

logger = structlog.get_logger()

WPA_PSK_MIN = 8
WPA_PSK_MAX = 63


async def ensure_radio_enabled(network_manager: NetworkManagerClient, policy: RetryPolicy) -> None:
    """Turn the WiFi radio on if needed and wait for it.

    Raises:
        PreconditionError if the radio cannot be read or stays off.
    """
    try:
        if await network_manager.radio_enabled():
            return
        logger.info("wifi_radio_enabling")
        await network_manager.set_radio(True)
    except ExecError as e:
        logger.error("wifi_radio_unavailable", error=e.stderr)
        raise PreconditionError("WiFi radio is unavailable.", code="radio_unavailable") from e

    if not await policy.wait_until(network_manager.radio_enabled, name="wifi_radio"):
        raise PreconditionError("WiFi radio could not be enabled.", code="radio_unavailable")
    logger.info("wifi_radio_enabled")


def validate_credentials(ssid: str, password: str, security: str) -> None:
    if not ssid.strip():
        raise InvalidConfigError("SSID is required.")
    if security == "none":
        return
    if not password:
        raise InvalidConfigError(f"A password is required for {security} networks.")
    if security in ("wpa", "wpa2", "wpa3") and not WPA_PSK_MIN <= len(password) <= WPA_PSK_MAX:
        raise InvalidConfigError(
            f"{security.upper()} passwords must be {WPA_PSK_MIN}-{WPA_PSK_MAX} characters."
        )


class WifiConnector:
    def __init__(
        self,
        network_manager: NetworkManagerClient,
        verifier: LinkVerifier,
        radio_policy: RetryPolicy,
        default_interface: str = "wlan0",
        scan_wait: float = 2.0,
    ):
        self._nm = network_manager
        self._verifier = verifier
        self._radio_policy = radio_policy
        self.default_interface = default_interface
        self._scan_wait = scan_wait

    def resolve_interface(self, request: WifiJoinRequest) -> str:
        return request.interface or self.default_interface

    async def connect(self, request: WifiJoinRequest) -> WifiConnectResult:
        """Join `request.ssid` with a freshly created profile named after the SSID."""
        iface = self.resolve_interface(request)
        validate_credentials(request.ssid, request.password, request.security)
        logger.info("wifi_connect_start", ssid=request.ssid, interface=iface, security=request.security)

        await ensure_radio_enabled(self._nm, self._radio_policy)

        try:
            await self._nm.delete_profile(request.ssid)
            logger.info("wifi_stale_profile_deleted", profile=request.ssid)
        except ExecError:
            pass  # no stale profile

        await self._refresh_scan()
        try:
            visible = await self._nm.visible_ssids()
        except ExecError as e:
            logger.warning("wifi_list_failed", error=e.stderr)
            visible = set()
        if request.ssid not in visible:
            logger.warning("wifi_ssid_not_visible", ssid=request.ssid, hidden=request.hidden)

        properties = [
            "type", "wifi",
            "ifname", iface,
            "con-name", request.ssid,
            "ssid", request.ssid,
            *nmcli.security_properties(request.security, request.password),
            "802-11-wireless.hidden", "yes" if request.hidden else "no",
        ]
        try:
            await self._nm.add_profile(properties)
            await self._nm.activate(request.ssid)
        except ExecError as e:
            logger.error("wifi_connect_failed", ssid=request.ssid, error=e.stderr)
            raise ApplyError(
                f"Failed to connect to {request.ssid}.",
                details={"ssid": request.ssid, "stderr": e.stderr},
            ) from e

        outcome = await self._verifier.verify(iface, request.ssid)
        logger.info("wifi_connected", ssid=request.ssid, interface=iface, attempts=outcome.attempts)
        return WifiConnectResult(
            ssid=request.ssid,
            interface=iface,
            connected=True,
            attempts=outcome.attempts,
        )

    async def disconnect(self) -> WifiDisconnectResult:
        try:
            active = await self._nm.list_profiles(active_only=True)
        except ExecError as e:
            raise CommandUnavailableError("Failed to list active connections.") from e

        # Access-point profiles belong to the hotspot, not the client radio.
        client = None
        for profile in active:
            if not profile.is_wireless:
                continue
            try:
                mode = await self._nm.profile_properties(profile.name, ["802-11-wireless.mode"])
            except ExecError:
                mode = {}
            if mode.get("802-11-wireless.mode") != "ap":
                client = profile
                break

        if client is None:
            logger.info("wifi_disconnect_noop")
            return WifiDisconnectResult(disconnected=False, message="No active WiFi connection.")

        try:
            await self._nm.deactivate(client.name)
        except ExecError as e:
            raise ApplyError(
                f"Failed to disconnect {client.name}.",
                details={"connection": client.name, "stderr": e.stderr},
            ) from e
        logger.info("wifi_disconnected", connection=client.name)
        return WifiDisconnectResult(
            disconnected=True,
            connection=client.name,
            message=f"Disconnected from {client.name}.",
        )

    async def _refresh_scan(self) -> None:
        try:
            await self._nm.rescan()
        except ExecError as e:
            # NM refuses rescans that come too soon after the last one.
            logger.warning("wifi_rescan_failed", error=e.stderr)
        await asyncio.sleep(self._scan_wait)

    async def scan(self) -> list[WifiNetwork]:
        await ensure_radio_enabled(self._nm, self._radio_policy)
        await self._refresh_scan()
        try:
            networks = await self._nm.wifi_networks()
        except ExecError as e:
            raise CommandUnavailableError("Failed to scan WiFi networks.") from e
        networks.sort(key=lambda n: n.signal, reverse=True)
        logger.info("wifi_scan_completed", count=len(networks))
        return networks
