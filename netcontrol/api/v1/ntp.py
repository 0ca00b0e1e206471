from fastapi import APIRouter, Depends, Response

from netcontrol.dependencies import get_orchestrator
from netcontrol.schemas.ntp import (
    ConnectivityResult,
    NtpCheckRequest,
    NtpConfig,
    NtpStatus,
    TimezoneListResponse,
    TimezoneRequest,
)
from netcontrol.services.orchestrator import NetworkOrchestrator

router = APIRouter()

CONNECTIVITY_STATUS_CODES = {
    "success": 200,
    "network_error": 503,
    "ntp_unreachable": 503,
    "ntp_sync_failed": 422,
}


@router.get("/api/ntp/status")
async def ntp_status(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> NtpStatus:
    return await orchestrator.get_ntp_status()


@router.post("/api/ntp/configure")
async def configure_ntp(
    body: NtpConfig,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> NtpStatus:
    """Set timezone and server declarations, then return the resulting status."""
    return await orchestrator.configure_ntp(body)


@router.post("/api/ntp/check")
async def check_ntp(
    body: NtpCheckRequest,
    response: Response,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> ConnectivityResult:
    """Diagnose reachability of an NTP server. The HTTP status follows the classification."""
    result = await orchestrator.check_ntp_connectivity(body.ip)
    response.status_code = CONNECTIVITY_STATUS_CODES[result.status]
    return result


@router.get("/api/ntp/timezones")
async def list_timezones(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> TimezoneListResponse:
    return TimezoneListResponse(timezones=await orchestrator.list_timezones())


@router.get("/api/ntp/timezone")
async def get_timezone(
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> TimezoneRequest:
    return TimezoneRequest(timezone=await orchestrator.get_timezone())


@router.post("/api/ntp/timezone")
async def set_timezone(
    body: TimezoneRequest,
    orchestrator: NetworkOrchestrator = Depends(get_orchestrator),
) -> TimezoneRequest:
    return TimezoneRequest(timezone=await orchestrator.set_timezone(body.timezone))
