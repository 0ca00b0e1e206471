import time

from fastapi import APIRouter, Depends

from netcontrol.dependencies import get_orchestrator
from netcontrol.schemas.health import HealthResponse
from netcontrol.services.orchestrator import NetworkOrchestrator

router = APIRouter()

_start_time = time.monotonic()


@router.get("/api/health")
async def health_check(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    """Service health check — no access key required."""
    nm_ok = await orchestrator.network_manager_running()
    return HealthResponse(
        status="ok" if nm_ok else "degraded",
        network_manager="running" if nm_ok else "unavailable",
        uptime_seconds=round(time.monotonic() - _start_time, 1),
    )
