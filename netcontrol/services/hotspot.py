"""Soft-AP hotspot manager."""

import structlog

from netcontrol.core.exceptions import ApplyError, CommandUnavailableError, InvalidConfigError
from netcontrol.core.executor import ExecError
from netcontrol.schemas.hotspot import (
    HotspotClient,
    HotspotConfig,
    HotspotConfigureResult,
    HotspotStatus,
)
from netcontrol.services import nmcli
from netcontrol.services.network_manager import NetworkManagerClient
from netcontrol.services.retry import RetryPolicy
from netcontrol.services.wifi import ensure_radio_enabled, validate_credentials

logger = structlog.get_logger()

MODE_FIELD = "802-11-wireless.mode"
STATUS_FIELDS = [
    "GENERAL.STATE",
    "802-11-wireless.ssid",
    "802-11-wireless.channel",
    "802-11-wireless.hidden",
    "802-11-wireless-security.key-mgmt",
    "802-11-wireless-security.proto",
]
PSK_FIELD = "802-11-wireless-security.psk"


class HotspotManager:
    """Manages the access-point profile on one radio.

    The hotspot profile is whichever wireless profile has `802-11-wireless.mode`
    set to `ap`; the configured profile name is checked first.
    """

    def __init__(
        self,
        network_manager: NetworkManagerClient,
        radio_policy: RetryPolicy,
        interface: str = "wlp3s0",
        profile_name: str = "hotspot",
        ssid: str = "Netctl-Hotspot",
        security: str = "wpa2",
        channel: int = 6,
    ):
        self._nm = network_manager
        self._radio_policy = radio_policy
        self.interface = interface
        self.profile_name = profile_name
        self._default_ssid = ssid
        self._default_security = security
        self._default_channel = channel

    def defaults(self) -> HotspotConfig:
        return HotspotConfig(
            enabled=False,
            interface=self.interface,
            ssid=self._default_ssid,
            profile_name=self.profile_name,
            security=self._default_security,
            channel=self._default_channel,
            hidden=False,
        )

    async def find_profile(self, preferred: str | None = None) -> str | None:
        preferred = preferred or self.profile_name
        profiles = [p for p in await self._nm.list_profiles() if p.is_wireless]
        profiles.sort(key=lambda p: p.name != preferred)
        for profile in profiles:
            try:
                values = await self._nm.profile_properties(profile.name, [MODE_FIELD])
            except ExecError:
                continue
            if values.get(MODE_FIELD) == "ap":
                return profile.name
        return None

    async def get_status(self, reveal_password: bool = False) -> HotspotStatus:
        try:
            name = await self.find_profile()
            if name is None:
                defaults = self.defaults()
                return HotspotStatus(
                    enabled=False,
                    status="inactive",
                    ssid=defaults.ssid,
                    security=defaults.security,
                    channel=defaults.channel,
                    hidden=False,
                    profile_name=defaults.profile_name,
                )
            values = await self._nm.profile_properties(name, STATUS_FIELDS)
        except ExecError as e:
            logger.error("hotspot_status_failed", error=e.stderr)
            raise CommandUnavailableError("Failed to read hotspot status.") from e

        ssid = values.get("802-11-wireless.ssid") or None
        # An existing profile is not a running hotspot.
        if values.get("GENERAL.STATE") != "activated":
            logger.info("hotspot_status", profile=name, active=False)
            return HotspotStatus(enabled=False, status="inactive", ssid=ssid, profile_name=name)

        channel = values.get("802-11-wireless.channel", "")
        status = HotspotStatus(
            enabled=True,
            status="active",
            ssid=ssid,
            security=nmcli.security_from_properties(
                values.get("802-11-wireless-security.key-mgmt", ""),
                values.get("802-11-wireless-security.proto", ""),
            ),
            channel=int(channel) if channel.isdigit() and int(channel) > 0 else None,
            hidden=values.get("802-11-wireless.hidden") == "yes",
            profile_name=name,
        )
        if reveal_password:
            status.password = await self._read_password(name)
        logger.info("hotspot_status", profile=name, active=True, ssid=ssid)
        return status

    async def _read_password(self, name: str) -> str | None:
        try:
            values = await self._nm.profile_properties(name, [PSK_FIELD], secrets=True)
        except ExecError as e:
            logger.warning("hotspot_password_read_failed", profile=name, error=e.stderr)
            return None
        return values.get(PSK_FIELD) or None

    async def configure(self, config: HotspotConfig) -> HotspotConfigureResult:
        if config.enabled:
            return await self._enable(config)
        return await self._disable(config)

    async def _enable(self, config: HotspotConfig) -> HotspotConfigureResult:
        validate_credentials(config.ssid, config.password, config.security)
        if not config.password:
            raise InvalidConfigError("A password is required to enable the hotspot.", details={"field": "password"})
        name = config.profile_name or self.profile_name
        iface = config.interface or self.interface
        channel = config.channel or self._default_channel
        logger.info(
            "hotspot_enable_start",
            profile=name,
            interface=iface,
            ssid=config.ssid,
            security=config.security,
            channel=channel,
        )

        await ensure_radio_enabled(self._nm, self._radio_policy)

        properties = [
            MODE_FIELD, "ap",
            "802-11-wireless.band", "bg" if channel <= 14 else "a",
            "802-11-wireless.channel", str(channel),
            "802-11-wireless.hidden", "yes" if config.hidden else "no",
            "ipv4.method", "shared",
            *nmcli.security_properties(config.security, config.password),
        ]
        try:
            exists = await self._nm.profile_exists(name)
        except ExecError as e:
            raise CommandUnavailableError("Failed to list connection profiles.") from e

        try:
            if exists:
                try:
                    await self._nm.deactivate(name)
                except ExecError:
                    logger.debug("hotspot_already_inactive", profile=name)
                await self._nm.modify_profile(name, ["802-11-wireless.ssid", config.ssid, *properties])
                if config.security == "none":
                    await self._nm.remove_setting(name, "802-11-wireless-security")
            else:
                await self._nm.add_profile(
                    [
                        "type", "wifi",
                        "ifname", iface,
                        "con-name", name,
                        "autoconnect", "yes",
                        "ssid", config.ssid,
                        *properties,
                    ]
                )
            await self._nm.activate(name)
        except ExecError as e:
            logger.error("hotspot_enable_failed", profile=name, error=e.stderr)
            raise ApplyError(
                f"Failed to enable hotspot {name}.",
                details={"profile": name, "stderr": e.stderr},
            ) from e

        logger.info("hotspot_enabled", profile=name, created=not exists)
        return HotspotConfigureResult(
            enabled=True,
            profile_name=name,
            changed=True,
            message=f"Hotspot {config.ssid} is active.",
        )

    async def _disable(self, config: HotspotConfig) -> HotspotConfigureResult:
        try:
            name = await self.find_profile(config.profile_name)
        except ExecError as e:
            raise CommandUnavailableError("Failed to list connection profiles.") from e

        if name is None:
            logger.info("hotspot_disable_noop")
            return HotspotConfigureResult(
                enabled=False,
                changed=False,
                message="No hotspot profile to disable.",
            )

        try:
            await self._nm.deactivate(name)
        except ExecError:
            logger.debug("hotspot_already_inactive", profile=name)
        try:
            await self._nm.delete_profile(name)
        except ExecError as e:
            raise ApplyError(
                f"Failed to remove hotspot profile {name}.",
                details={"profile": name, "stderr": e.stderr},
            ) from e

        logger.info("hotspot_disabled", profile=name)
        return HotspotConfigureResult(
            enabled=False,
            profile_name=name,
            changed=True,
            message=f"Hotspot {name} disabled.",
        )

    async def list_clients(self, interface: str | None = None) -> list[HotspotClient]:
        iface = interface or self.interface
        try:
            macs = await self._nm.stations(iface)
        except ExecError as e:
            logger.warning("hotspot_clients_unavailable", interface=iface, error=e.stderr)
            return []
        return [HotspotClient(mac=mac.lower()) for mac in macs]
