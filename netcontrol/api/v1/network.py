from fastapi import APIRouter, Depends

from netcontrol.core.exceptions import NotFoundError
from netcontrol.dependencies import get_orchestrator
from netcontrol.schemas.network import (
    BoundProfileConfig,
    InterfaceListResponse,
    NetworkConfigRequest,
    NetworkConfigResult,
    NetworkStatistics,
)
from netcontrol.services.orchestrator import NetworkOrchestrator

router = APIRouter()


@router.get("/api/interfaces")
async def list_interfaces(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> InterfaceListResponse:
    """All network interfaces with live addressing."""
    return InterfaceListResponse(interfaces=await orchestrator.list_interfaces())


@router.get("/api/interfaces/{name}/profile")
async def get_interface_profile(
    name: str,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> BoundProfileConfig:
    """Stored addressing of the profile bound to an interface."""
    device = await orchestrator.get_interface(name)
    if device is None:
        raise NotFoundError(f"Interface {name} not found.")
    if not device.bound_profile:
        raise NotFoundError(f"No profile is bound to {name}.")
    config = await orchestrator.get_bound_profile_config(device.bound_profile)
    if config is None:
        raise NotFoundError(f"Profile {device.bound_profile} not found.")
    return config


@router.get("/api/wifi/interfaces")
async def list_wifi_interfaces(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> InterfaceListResponse:
    return InterfaceListResponse(interfaces=await orchestrator.list_wifi_interfaces())


@router.post("/api/configure")
async def configure_interface(
    body: NetworkConfigRequest,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> NetworkConfigResult:
    """Apply DHCP or static addressing and wait for the link to come up."""
    return await orchestrator.configure_interface(body)


@router.get("/api/network/stats")
async def network_statistics(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> NetworkStatistics:
    return await orchestrator.get_network_statistics()
