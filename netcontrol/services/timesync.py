"""Time-sync manager — timezone, systemd-timesyncd server declarations and connectivity diagnostics."""

from pathlib import Path

import structlog

from netcontrol.core.exceptions import ApplyError, CommandUnavailableError, InvalidConfigError
from netcontrol.core.executor import CommandExecutor, ExecError
from netcontrol.schemas.ntp import (
    ConnectivityError,
    ConnectivityProbe,
    ConnectivityResult,
    NtpConfig,
    NtpStatus,
    TimesyncSummary,
)
from netcontrol.services import nmcli, timesyncd
from netcontrol.services.network_manager import NetworkManagerClient

logger = structlog.get_logger()

SHOW_PROPERTIES = ["Timezone", "NTPSynchronized", "TimeUSec"]


class TimeSyncManager:
    def __init__(
        self,
        executor: CommandExecutor,
        network_manager: NetworkManagerClient,
        conf_path: str | Path = "/etc/systemd/timesyncd.conf",
        unit: str = "systemd-timesyncd",
    ):
        self._executor = executor
        self._nm = network_manager
        self.conf_path = Path(conf_path)
        self.unit = unit

    async def _run(self, *argv: str) -> str:
        result = await self._executor.execute(list(argv))
        return result.stdout

    # ── Timezone ─────────────────────────────────────────────────────────────

    async def list_timezones(self) -> list[str]:
        try:
            stdout = await self._run("timedatectl", "list-timezones")
        except ExecError as e:
            raise CommandUnavailableError("Failed to list timezones.") from e
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    async def get_timezone(self) -> str:
        try:
            return (await self._run("timedatectl", "show", "--property=Timezone", "--value")).strip()
        except ExecError as e:
            raise CommandUnavailableError("Failed to read the current timezone.") from e

    async def set_timezone(self, timezone: str) -> str:
        timezone = timezone.strip()
        if not timezone or any(c.isspace() for c in timezone):
            raise InvalidConfigError(f"Invalid timezone: {timezone!r}")
        try:
            known = await self.list_timezones()
        except CommandUnavailableError:
            known = []
        if known and timezone not in known:
            raise InvalidConfigError(f"Unknown timezone: {timezone}")

        try:
            await self._run("timedatectl", "set-timezone", timezone)
        except ExecError as e:
            raise ApplyError(f"Failed to set timezone {timezone}.", details={"stderr": e.stderr}) from e
        logger.info("timezone_set", timezone=timezone)
        return timezone

    # ── Configuration ────────────────────────────────────────────────────────

    def _read_conf(self) -> str:
        try:
            return self.conf_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    @staticmethod
    def _validate_servers(config: NtpConfig) -> None:
        if not config.primary_server.strip():
            raise InvalidConfigError("A primary NTP server is required when NTP is enabled.")
        for field_name, server in (
            ("primary_server", config.primary_server),
            ("fallback_server", config.fallback_server),
        ):
            if server and not timesyncd.is_valid_server(server):
                raise InvalidConfigError(
                    f"{field_name} must be a single hostname or IP address: {server!r}",
                    details={"field": field_name},
                )

    def _write_declarations(self, config: NtpConfig) -> None:
        text = self._read_conf()
        updated = timesyncd.rewrite_declarations(
            text,
            primary_server=config.primary_server,
            primary_commented=config.primary_commented,
            fallback_server=config.fallback_server,
            fallback_commented=config.fallback_commented,
        )
        backup = timesyncd.backup_file(self.conf_path)
        timesyncd.write_atomic(self.conf_path, updated)
        logger.info(
            "timesyncd_conf_written",
            path=str(self.conf_path),
            backup=str(backup) if backup else None,
            primary=config.primary_server,
            primary_commented=config.primary_commented,
            fallback=config.fallback_server,
        )

    async def configure(self, config: NtpConfig) -> NtpStatus:
        if config.enabled:
            self._validate_servers(config)
        logger.info("ntp_configure_start", enabled=config.enabled, timezone=config.timezone)

        await self.set_timezone(config.timezone)

        try:
            if config.enabled:
                try:
                    self._write_declarations(config)
                except OSError as e:
                    logger.error("timesyncd_conf_write_failed", path=str(self.conf_path), error=str(e))
                    raise ApplyError(
                        f"Failed to update {self.conf_path}.",
                        details={"error": str(e)},
                    ) from e
                try:
                    await self._run("systemctl", "enable", self.unit)
                except ExecError as e:
                    logger.warning("timesyncd_enable_failed", unit=self.unit, error=e.stderr)
                await self._run("systemctl", "restart", self.unit)
                await self._run("timedatectl", "set-ntp", "true")
            else:
                await self._run("timedatectl", "set-ntp", "false")
        except ExecError as e:
            logger.error("ntp_configure_failed", error=e.stderr)
            raise ApplyError("Failed to apply NTP configuration.", details={"stderr": e.stderr}) from e

        logger.info("ntp_configured", enabled=config.enabled, primary=config.primary_server)
        return await self.get_status()

    # ── Status ───────────────────────────────────────────────────────────────

    async def timesync_summary(self) -> TimesyncSummary | None:
        try:
            stdout = await self._run("timedatectl", "timesync-status")
        except ExecError as e:
            logger.warning("timesync_status_unavailable", error=e.stderr)
            return None
        return timesyncd.parse_timesync_status(stdout)

    async def get_status(self) -> NtpStatus:
        try:
            stdout = await self._run(
                "timedatectl", "show", *[f"--property={p}" for p in SHOW_PROPERTIES]
            )
        except ExecError as e:
            raise CommandUnavailableError("Failed to read time settings.") from e
        properties = timesyncd.parse_show_properties(stdout)
        synchronized = properties.get("NTPSynchronized") == "yes"

        try:
            declarations = timesyncd.parse_declarations(self._read_conf())
        except OSError as e:
            logger.warning("timesyncd_conf_read_failed", path=str(self.conf_path), error=str(e))
            declarations = timesyncd.TimesyncDeclarations()
        primary = declarations.primary or timesyncd.ServerDeclaration()
        fallback = declarations.fallback or timesyncd.ServerDeclaration()

        servers = []
        for server in primary.servers + fallback.servers:
            if server not in servers:
                servers.append(server)

        summary = await self.timesync_summary()
        active_server = None
        last_sync = None
        if summary is not None:
            active_server = summary.server_name or summary.server
            last_sync = summary.last_sync
            if active_server and active_server not in servers:
                logger.info("timesync_active_server_undeclared", server=active_server)

        return NtpStatus(
            enabled=synchronized,
            synchronized=synchronized,
            timezone=properties.get("Timezone", ""),
            current_time=properties.get("TimeUSec", ""),
            ntp_servers=servers,
            primary_server=primary.server,
            primary_server_commented=primary.commented,
            fallback_server=fallback.server,
            fallback_server_commented=fallback.commented,
            active_server=active_server,
            last_sync=last_sync,
        )

    # ── Connectivity ─────────────────────────────────────────────────────────

    async def _select_ethernet(self) -> tuple[str, str]:
        try:
            rows = await self._nm.device_rows()
        except ExecError as e:
            logger.warning("ethernet_selection_failed", error=e.stderr)
            return "unknown", "unknown"
        # Raw nmcli TYPE; unrecognised types must not count as ethernet.
        ethernet = [r for r in rows if r.type == "ethernet"]
        for row in ethernet:
            if nmcli.map_state(row.state) == "connected":
                return row.name, "connected"
        if ethernet:
            return ethernet[0].name, "disconnected"
        return "unknown", "unknown"

    async def check_connectivity(self, target_host: str) -> ConnectivityResult:
        """Classify reachability of an NTP server. The first failing gate wins."""
        host = target_host.strip()
        if not host:
            raise InvalidConfigError("An NTP server address is required.")

        iface, link = await self._select_ethernet()
        probe = ConnectivityProbe(ip=host, ping_reachable=False, timesync=None)

        def result(status, error=None):
            logger.info("ntp_connectivity_checked", host=host, status=status, interface=iface, link=link)
            return ConnectivityResult(
                status=status,
                used_iface=iface,
                iface_link=link,
                primary=probe,
                error=error,
            )

        if link != "connected":
            return result(
                "network_error",
                ConnectivityError(
                    code="network_error",
                    message=f"Network interface is not connected ({iface}: {link}).",
                ),
            )

        if not await self._nm.ping(host):
            return result(
                "ntp_unreachable",
                ConnectivityError(code="ntp_unreachable", message=f"Ping to NTP server {host} failed."),
            )

        probe.ping_reachable = True
        probe.timesync = await self.timesync_summary()
        if probe.timesync is None or probe.timesync.stratum is None or probe.timesync.offset_ms is None:
            return result(
                "ntp_sync_failed",
                ConnectivityError(
                    code="ntp_sync_failed",
                    message="NTP server is reachable but no synchronization data is available.",
                ),
            )

        return result("success")
