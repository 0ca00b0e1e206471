from fastapi import APIRouter, Depends, Query

from netcontrol.dependencies import get_orchestrator
from netcontrol.schemas.hotspot import HotspotClient, HotspotConfig, HotspotConfigureResult, HotspotStatus
from netcontrol.services.orchestrator import NetworkOrchestrator

router = APIRouter()


@router.get("/api/softap/status")
async def hotspot_status(
    reveal_password: bool = Query(False),
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> HotspotStatus:
    """Hotspot liveness and settings. The password is only read when requested."""
    return await orchestrator.get_hotspot_status(reveal_password=reveal_password)


@router.post("/api/softap/configure")
async def configure_hotspot(
    body: HotspotConfig,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> HotspotConfigureResult:
    return await orchestrator.configure_hotspot(body)


@router.get("/api/softap/defaults")
async def hotspot_defaults(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> HotspotConfig:
    return orchestrator.get_hotspot_defaults()


@router.get("/api/softap/clients")
async def hotspot_clients(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> list[HotspotClient]:
    """Stations associated with the hotspot. Empty when unavailable."""
    return await orchestrator.list_hotspot_clients()
