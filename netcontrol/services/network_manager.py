"""Typed client for NetworkManager (nmcli) and iproute2, built on the command executor."""

import structlog

from netcontrol.core.executor import CommandExecutor, ExecError
from netcontrol.schemas.network import AdminState, InterfaceDescriptor
from netcontrol.schemas.wifi import WifiNetwork
from netcontrol.services import nmcli
from netcontrol.services.nmcli import DeviceRow, ProfileSummary

logger = structlog.get_logger()

SYS_CLASS_NET = "/sys/class/net"


class NetworkManagerClient:
    """Every nmcli/ip invocation the orchestrator needs, as argv lists.

    Read helpers used for best-effort enrichment return None on failure;
    mutation helpers let ExecError propagate so callers can classify it.
    """

    def __init__(self, executor: CommandExecutor, ping_timeout: int = 2):
        self._executor = executor
        self._ping_timeout = ping_timeout

    async def _run(self, *argv: str) -> str:
        result = await self._executor.execute(list(argv))
        return result.stdout

    # ── Devices ──────────────────────────────────────────────────────────────

    async def running(self) -> bool:
        try:
            return (await self._run("nmcli", "-t", "-f", "RUNNING", "general")).strip() == "running"
        except ExecError:
            return False

    async def device_status(self, unknown_state: AdminState = "unavailable") -> list[InterfaceDescriptor]:
        stdout = await self._run("nmcli", "-t", "-f", "DEVICE,TYPE,STATE,CONNECTION", "device", "status")
        return nmcli.parse_device_status(stdout, unknown_state)

    async def device_rows(self) -> list[DeviceRow]:
        stdout = await self._run("nmcli", "-t", "-f", "DEVICE,TYPE,STATE,CONNECTION", "device", "status")
        return nmcli.parse_device_rows(stdout)

    async def find_device(self, iface: str) -> InterfaceDescriptor | None:
        for device in await self.device_status():
            if device.name == iface:
                return device
        return None

    async def device_state(self, iface: str) -> AdminState | None:
        device = await self.find_device(iface)
        return device.admin_state if device else None

    async def connect_device(self, iface: str) -> None:
        await self._run("nmcli", "device", "connect", iface)

    async def has_carrier(self, iface: str) -> bool:
        try:
            carrier = await self._run("cat", f"{SYS_CLASS_NET}/{iface}/carrier")
        except ExecError as e:
            logger.warning("carrier_read_failed", interface=iface, error=e.stderr)
            return False
        return carrier.strip() == "1"

    async def mac_address(self, iface: str) -> str | None:
        try:
            mac = (await self._run("cat", f"{SYS_CLASS_NET}/{iface}/address")).strip()
        except ExecError:
            return None
        return mac or None

    async def addresses(self, iface: str) -> tuple[str | None, str | None]:
        try:
            stdout = await self._run("ip", "-j", "addr", "show", "dev", iface)
            return nmcli.parse_ip_addr_json(stdout)
        except (ExecError, ValueError):
            return None, None

    async def default_gateway(self, iface: str) -> str | None:
        try:
            stdout = await self._run("ip", "-j", "route", "show", "default", "dev", iface)
            return nmcli.parse_default_gateway_json(stdout)
        except (ExecError, ValueError):
            return None

    async def dns_servers(self, iface: str) -> list[str]:
        try:
            stdout = await self._run("nmcli", "-t", "-f", "IP4.DNS", "device", "show", iface)
        except ExecError:
            return []
        return nmcli.collect_indexed(nmcli.parse_key_values(stdout), "IP4.DNS")

    async def ping(self, host: str) -> bool:
        try:
            await self._executor.execute(
                ["ping", "-c", "1", "-W", str(self._ping_timeout), host],
                timeout=self._ping_timeout + 3,
            )
        except ExecError:
            return False
        return True

    # ── Profiles ─────────────────────────────────────────────────────────────

    async def list_profiles(self, active_only: bool = False) -> list[ProfileSummary]:
        argv = ["nmcli", "-t", "-f", "NAME,TYPE,DEVICE,ACTIVE", "connection", "show"]
        if active_only:
            argv.append("--active")
        return nmcli.parse_profile_list(await self._run(*argv))

    async def profile_properties(self, name: str, fields: list[str], secrets: bool = False) -> dict[str, str]:
        argv = ["nmcli", "-t", "-f", ",".join(fields)]
        if secrets:
            argv.append("--show-secrets")
        argv += ["connection", "show", "id", name]
        return nmcli.parse_key_values(await self._run(*argv))

    async def profile_exists(self, name: str) -> bool:
        return any(p.name == name for p in await self.list_profiles())

    async def profile_for_interface(self, iface: str) -> str | None:
        """Name of the profile bound to `iface`: the active one first, then by interface-name."""
        profiles = await self.list_profiles()
        for profile in profiles:
            if profile.device == iface:
                return profile.name
        for profile in profiles:
            if profile.device is not None:
                continue
            try:
                props = await self.profile_properties(profile.name, ["connection.interface-name"])
            except ExecError:
                continue
            if props.get("connection.interface-name") == iface:
                return profile.name
        return None

    async def add_profile(self, properties: list[str]) -> None:
        await self._run("nmcli", "connection", "add", *properties)

    async def modify_profile(self, name: str, properties: list[str]) -> None:
        await self._run("nmcli", "connection", "modify", "id", name, *properties)

    async def remove_setting(self, name: str, setting: str) -> None:
        await self._run("nmcli", "connection", "modify", "id", name, "remove", setting)

    async def activate(self, name: str) -> None:
        await self._run("nmcli", "connection", "up", "id", name)

    async def deactivate(self, name: str) -> None:
        await self._run("nmcli", "connection", "down", "id", name)

    async def delete_profile(self, name: str) -> None:
        await self._run("nmcli", "connection", "delete", "id", name)

    # ── WiFi radio ───────────────────────────────────────────────────────────

    async def radio_enabled(self) -> bool:
        return nmcli.parse_radio_enabled(await self._run("nmcli", "radio", "wifi"))

    async def set_radio(self, enabled: bool) -> None:
        await self._run("nmcli", "radio", "wifi", "on" if enabled else "off")

    async def rescan(self) -> None:
        await self._run("nmcli", "device", "wifi", "rescan")

    async def visible_ssids(self) -> set[str]:
        return nmcli.parse_ssid_list(await self._run("nmcli", "-t", "-f", "SSID", "device", "wifi", "list"))

    async def wifi_networks(self) -> list[WifiNetwork]:
        stdout = await self._run("nmcli", "-t", "-f", "SSID,SIGNAL,SECURITY,FREQ,CHAN", "device", "wifi", "list")
        return nmcli.parse_wifi_list(stdout)

    async def stations(self, iface: str) -> list[str]:
        """MACs of stations associated with an access-point interface (iw)."""
        return nmcli.parse_station_dump(await self._run("iw", "dev", iface, "station", "dump"))
