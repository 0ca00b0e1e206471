"""Interface inventory — live enumeration with best-effort enrichment."""

import structlog

from netcontrol.core.exceptions import CommandUnavailableError
from netcontrol.core.executor import CommandExecutor, ExecError
from netcontrol.schemas.network import BoundProfileConfig, InterfaceDescriptor, NetworkStatistics
from netcontrol.services import nmcli
from netcontrol.services.network_manager import NetworkManagerClient

logger = structlog.get_logger()

PROFILE_DISPLAY_FIELDS = [
    "connection.interface-name",
    "ipv4.method",
    "ipv4.addresses",
    "ipv4.gateway",
    "ipv4.dns",
]


class InterfaceInventory:
    """Enumerates interfaces. Nothing is cached between calls."""

    def __init__(self, network_manager: NetworkManagerClient, executor: CommandExecutor):
        self._nm = network_manager
        self._executor = executor

    async def list_interfaces(self) -> list[InterfaceDescriptor]:
        """All interfaces, each enriched with MAC, addresses, gateway and DNS when observable."""
        try:
            devices = await self._nm.device_status()
        except ExecError as e:
            logger.error("interface_enumeration_failed", error=e.stderr)
            raise CommandUnavailableError("Failed to retrieve network interfaces.") from e

        interfaces = [await self._enrich(d) for d in devices]
        logger.info("interfaces_listed", count=len(interfaces))
        return interfaces

    async def list_wifi_interfaces(self) -> list[InterfaceDescriptor]:
        try:
            devices = await self._nm.device_status(unknown_state="disconnected")
        except ExecError as e:
            logger.error("wifi_interface_enumeration_failed", error=e.stderr)
            raise CommandUnavailableError("Failed to get WiFi interfaces.") from e

        wifi = []
        for device in devices:
            if device.kind != "wifi":
                continue
            wifi.append(await self._enrich(device))
        logger.info("wifi_interfaces_listed", count=len(wifi))
        return wifi

    async def get_interface(self, name: str) -> InterfaceDescriptor | None:
        """Live descriptor of one interface, without enrichment."""
        try:
            return await self._nm.find_device(name)
        except ExecError as e:
            logger.error("interface_lookup_failed", interface=name, error=e.stderr)
            raise CommandUnavailableError("Failed to read device status.") from e

    async def _enrich(self, device: InterfaceDescriptor) -> InterfaceDescriptor:
        # Each sub-query degrades to "field omitted" on its own.
        mac = await self._nm.mac_address(device.name)
        ipv4_cidr, ipv6 = await self._nm.addresses(device.name)
        gateway = await self._nm.default_gateway(device.name)
        dns = await self._nm.dns_servers(device.name)
        ipv4 = subnet_mask = None
        if ipv4_cidr:
            ipv4, subnet_mask = nmcli.split_cidr(ipv4_cidr)
        logger.debug("interface_enriched", device=device.name, ipv4=ipv4, state=device.admin_state)
        return device.model_copy(
            update={
                "mac": mac,
                "ipv4": ipv4,
                "ipv6": ipv6,
                "subnet_mask": subnet_mask,
                "gateway": gateway,
                "dns": dns or None,
            }
        )

    async def get_bound_profile_config(self, profile_name: str) -> BoundProfileConfig | None:
        """Stored addressing of a profile for display. None when the profile does not exist."""
        try:
            values = await self._nm.profile_properties(profile_name, PROFILE_DISPLAY_FIELDS)
        except ExecError as e:
            logger.info("profile_not_found", profile=profile_name, error=e.stderr)
            return None
        config = nmcli.parse_profile_config(values)
        logger.info("profile_config_retrieved", profile=profile_name, dhcp=config.dhcp)
        return config

    async def get_network_statistics(self) -> NetworkStatistics:
        try:
            result = await self._executor.execute(["cat", "/proc/net/dev"])
        except ExecError as e:
            logger.error("network_statistics_failed", error=e.stderr)
            raise CommandUnavailableError("Failed to retrieve network statistics.") from e
        counters = nmcli.parse_proc_net_dev(result.stdout)
        logger.info("network_statistics_retrieved", interfaces=sorted(counters))
        return NetworkStatistics(interfaces=counters)
