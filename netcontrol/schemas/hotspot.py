from typing import Literal

from pydantic import BaseModel

from netcontrol.schemas.wifi import Security


class HotspotConfig(BaseModel):
    enabled: bool
    interface: str | None = None
    ssid: str = ""
    password: str = ""
    profile_name: str | None = None
    security: Security = "wpa2"
    channel: int | None = None
    hidden: bool = False


class HotspotStatus(BaseModel):
    enabled: bool
    status: Literal["active", "inactive"] = "inactive"
    ssid: str | None = None
    security: Security | None = None
    channel: int | None = None
    hidden: bool | None = None
    profile_name: str | None = None
    password: str | None = None  # only set when explicitly re-queried


class HotspotConfigureResult(BaseModel):
    enabled: bool
    profile_name: str | None = None
    changed: bool = True
    message: str | None = None


class HotspotClient(BaseModel):
    mac: str
    connected: bool = True
