from fastapi import APIRouter, Depends

from netcontrol.dependencies import get_orchestrator
from netcontrol.schemas.wifi import WifiConnectResult, WifiDisconnectResult, WifiJoinRequest, WifiScanResponse
from netcontrol.services.orchestrator import NetworkOrchestrator

router = APIRouter()


@router.post("/api/network/wifi/connect")
async def connect_wifi(
    body: WifiJoinRequest,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> WifiConnectResult:
    """Join a WiFi network with a fresh profile named after the SSID."""
    return await orchestrator.connect_wifi(body)


@router.post("/api/network/wifi/disconnect")
async def disconnect_wifi(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> WifiDisconnectResult:
    return await orchestrator.disconnect_wifi()


@router.get("/api/network/wifi/scan")
async def scan_wifi(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> WifiScanResponse:
    """Visible networks, strongest first."""
    return WifiScanResponse(networks=await orchestrator.scan_wifi())
