"""Network orchestrator — the single facade the API and CLI call into.

Components are constructed explicitly from an injected CommandExecutor so the
whole stack can run against a scripted fake in tests. Mutating operations on
the same interface, radio or the time-sync config are serialized here.
"""

from netcontrol.config import Settings
from netcontrol.core.executor import CommandExecutor
from netcontrol.schemas.hotspot import HotspotClient, HotspotConfig, HotspotConfigureResult, HotspotStatus
from netcontrol.schemas.network import (
    BoundProfileConfig,
    InterfaceDescriptor,
    NetworkConfigRequest,
    NetworkConfigResult,
    NetworkStatistics,
)
from netcontrol.schemas.ntp import ConnectivityResult, NtpConfig, NtpStatus
from netcontrol.schemas.wifi import WifiConnectResult, WifiDisconnectResult, WifiJoinRequest, WifiNetwork
from netcontrol.services.configurator import InterfaceConfigurator
from netcontrol.services.hotspot import HotspotManager
from netcontrol.services.inventory import InterfaceInventory
from netcontrol.services.locks import KeyedLocks
from netcontrol.services.network_manager import NetworkManagerClient
from netcontrol.services.retry import RetryPolicy
from netcontrol.services.timesync import TimeSyncManager
from netcontrol.services.verification import LinkVerifier
from netcontrol.services.wifi import WifiConnector

TIMESYNC_LOCK = "timesync"
# Shared by every operation that may toggle the WiFi radio; taken after the interface lock.
RADIO_LOCK = "wifi-radio"


class NetworkOrchestrator:
    def __init__(
        self,
        network_manager: NetworkManagerClient,
        inventory: InterfaceInventory,
        configurator: InterfaceConfigurator,
        wifi: WifiConnector,
        hotspot: HotspotManager,
        timesync: TimeSyncManager,
        locks: KeyedLocks | None = None,
    ):
        self.network_manager = network_manager
        self.inventory = inventory
        self.configurator = configurator
        self.wifi = wifi
        self.hotspot = hotspot
        self.timesync = timesync
        self.locks = locks or KeyedLocks()

    @classmethod
    def from_settings(cls, executor: CommandExecutor, settings: Settings) -> "NetworkOrchestrator":
        """Wire every component against one executor using the configured timings."""
        nm = NetworkManagerClient(executor, ping_timeout=settings.netctl_ping_timeout_seconds)
        verify_policy = RetryPolicy(
            max_attempts=settings.netctl_max_verify_attempts,
            settle_delay=settings.netctl_settle_delay,
            backoff=settings.netctl_retry_backoff,
        )
        radio_policy = RetryPolicy(
            max_attempts=settings.netctl_max_verify_attempts,
            settle_delay=settings.netctl_radio_wait,
            backoff=0.0,
        )
        verifier = LinkVerifier(nm, verify_policy, reactivate_pause=settings.netctl_reactivate_pause)
        return cls(
            network_manager=nm,
            inventory=InterfaceInventory(nm, executor),
            configurator=InterfaceConfigurator(
                nm, verifier, enable_settle_delay=settings.netctl_enable_settle_delay
            ),
            wifi=WifiConnector(
                nm,
                verifier,
                radio_policy,
                default_interface=settings.netctl_wifi_client_interface,
                scan_wait=settings.netctl_scan_wait,
            ),
            hotspot=HotspotManager(
                nm,
                radio_policy,
                interface=settings.netctl_hotspot_interface,
                profile_name=settings.netctl_hotspot_profile_name,
                ssid=settings.netctl_hotspot_ssid,
                security=settings.netctl_hotspot_security,
                channel=settings.netctl_hotspot_channel,
            ),
            timesync=TimeSyncManager(
                executor,
                nm,
                conf_path=settings.netctl_timesyncd_conf_path,
                unit=settings.netctl_timesyncd_unit,
            ),
        )

    # ── Interfaces ───────────────────────────────────────────────────────────

    async def network_manager_running(self) -> bool:
        return await self.network_manager.running()

    async def list_interfaces(self) -> list[InterfaceDescriptor]:
        return await self.inventory.list_interfaces()

    async def list_wifi_interfaces(self) -> list[InterfaceDescriptor]:
        return await self.inventory.list_wifi_interfaces()

    async def get_interface(self, name: str) -> InterfaceDescriptor | None:
        return await self.inventory.get_interface(name)

    async def get_bound_profile_config(self, profile_name: str) -> BoundProfileConfig | None:
        return await self.inventory.get_bound_profile_config(profile_name)

    async def get_network_statistics(self) -> NetworkStatistics:
        return await self.inventory.get_network_statistics()

    async def configure_interface(self, request: NetworkConfigRequest) -> NetworkConfigResult:
        async with self.locks.hold(request.interface):
            return await self.configurator.configure(request)

    # ── WiFi client ──────────────────────────────────────────────────────────

    async def connect_wifi(self, request: WifiJoinRequest) -> WifiConnectResult:
        async with self.locks.hold(self.wifi.resolve_interface(request)), self.locks.hold(RADIO_LOCK):
            return await self.wifi.connect(request)

    async def disconnect_wifi(self) -> WifiDisconnectResult:
        async with self.locks.hold(self.wifi.default_interface):
            return await self.wifi.disconnect()

    async def scan_wifi(self) -> list[WifiNetwork]:
        async with self.locks.hold(RADIO_LOCK):
            return await self.wifi.scan()

    # ── Hotspot ──────────────────────────────────────────────────────────────

    async def get_hotspot_status(self, reveal_password: bool = False) -> HotspotStatus:
        return await self.hotspot.get_status(reveal_password=reveal_password)

    async def configure_hotspot(self, config: HotspotConfig) -> HotspotConfigureResult:
        async with self.locks.hold(config.interface or self.hotspot.interface), self.locks.hold(RADIO_LOCK):
            return await self.hotspot.configure(config)

    def get_hotspot_defaults(self) -> HotspotConfig:
        return self.hotspot.defaults()

    async def list_hotspot_clients(self) -> list[HotspotClient]:
        return await self.hotspot.list_clients()

    # ── Time sync ────────────────────────────────────────────────────────────

    async def get_ntp_status(self) -> NtpStatus:
        return await self.timesync.get_status()

    async def configure_ntp(self, config: NtpConfig) -> NtpStatus:
        async with self.locks.hold(TIMESYNC_LOCK):
            return await self.timesync.configure(config)

    async def check_ntp_connectivity(self, host: str) -> ConnectivityResult:
        return await self.timesync.check_connectivity(host)

    async def list_timezones(self) -> list[str]:
        return await self.timesync.list_timezones()

    async def get_timezone(self) -> str:
        return await self.timesync.get_timezone()

    async def set_timezone(self, timezone: str) -> str:
        async with self.locks.hold(TIMESYNC_LOCK):
            return await self.timesync.set_timezone(timezone)
