from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

InterfaceKind = Literal["ethernet", "wifi", "bridge", "loopback"]
AdminState = Literal["connected", "disconnected", "unavailable", "unmanaged"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InterfaceDescriptor(BaseModel):
    name: str
    kind: InterfaceKind
    admin_state: AdminState
    bound_profile: str | None = None
    mac: str | None = None
    ipv4: str | None = None
    ipv6: str | None = None
    subnet_mask: str | None = None
    gateway: str | None = None
    dns: list[str] | None = None


class NetworkConfigRequest(BaseModel):
    interface: str
    dhcp: bool
    ipv4: str | None = None
    gateway: str | None = None
    subnet_mask: str | None = None
    nameservers: list[str] | None = None


class NetworkConfigResult(BaseModel):
    interface: str
    configured: bool
    method: Literal["dhcp", "static"]
    profile: str
    address: str | None = None
    attempts: int = 1
    timestamp: datetime = Field(default_factory=_utcnow)


class BoundProfileConfig(BaseModel):
    """Stored addressing of a profile, for display only."""

    interface: str = ""
    dhcp: bool = True
    ipv4: str = ""
    gateway: str = ""
    nameservers: list[str] = []
    subnet_mask: str = ""


class InterfaceCounters(BaseModel):
    bytes_received: int = 0
    bytes_sent: int = 0
    packets_received: int = 0
    packets_sent: int = 0
    errors: int = 0
    dropped: int = 0


class NetworkStatistics(BaseModel):
    interfaces: dict[str, InterfaceCounters] = {}
    timestamp: datetime = Field(default_factory=_utcnow)


class InterfaceListResponse(BaseModel):
    interfaces: list[InterfaceDescriptor] = []
