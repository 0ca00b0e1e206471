from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

Security = Literal["none", "wep", "wpa", "wpa2", "wpa3"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WifiJoinRequest(BaseModel):
    ssid: str
    password: str = ""
    security: Security = "wpa2"
    hidden: bool = False
    interface: str | None = None  # defaults to the configured client radio


class WifiConnectResult(BaseModel):
    ssid: str
    interface: str
    connected: bool
    attempts: int = 1
    timestamp: datetime = Field(default_factory=_utcnow)


class WifiDisconnectResult(BaseModel):
    disconnected: bool
    connection: str | None = None
    message: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class WifiNetwork(BaseModel):
    ssid: str
    signal: int
    security: str = "none"
    frequency: int = 0
    channel: int = 0


class WifiScanResponse(BaseModel):
    networks: list[WifiNetwork] = []
