from typing import Literal

from pydantic import BaseModel

ConnectivityStatus = Literal["success", "network_error", "ntp_unreachable", "ntp_sync_failed"]


class NtpConfig(BaseModel):
    enabled: bool
    primary_server: str
    primary_commented: bool = False
    fallback_server: str | None = None
    fallback_commented: bool = False
    timezone: str


class NtpStatus(BaseModel):
    enabled: bool  # actual sync state, not the primary line's commented-state
    synchronized: bool
    timezone: str
    current_time: str
    ntp_servers: list[str] = []
    primary_server: str = ""
    primary_server_commented: bool = False
    fallback_server: str = ""
    fallback_server_commented: bool = False
    active_server: str | None = None
    last_sync: str | None = None


class TimesyncSummary(BaseModel):
    server: str | None = None
    server_name: str | None = None
    stratum: int | None = None
    offset_ms: float | None = None
    poll_interval: str | None = None
    last_sync: str | None = None


class ConnectivityError(BaseModel):
    code: str
    message: str


class ConnectivityProbe(BaseModel):
    ip: str
    ping_reachable: bool | None = None
    timesync: TimesyncSummary | None = None


class ConnectivityResult(BaseModel):
    status: ConnectivityStatus
    used_iface: str
    iface_link: Literal["connected", "disconnected", "unknown"]
    target: str = "primary"
    primary: ConnectivityProbe
    error: ConnectivityError | None = None


class NtpCheckRequest(BaseModel):
    ip: str


class TimezoneRequest(BaseModel):
    timezone: str


class TimezoneListResponse(BaseModel):
    timezones: list[str] = []
