from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str  # "ok" or "degraded"
    network_manager: str  # "running" or "unavailable"
    uptime_seconds: float = 0.0
    service: str = "netcontrol"
    version: str = "0.1.0"
