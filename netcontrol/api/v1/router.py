from fastapi import APIRouter

from netcontrol.api.v1.health import router as health_router
from netcontrol.api.v1.hotspot import router as hotspot_router
from netcontrol.api.v1.network import router as network_router
from netcontrol.api.v1.ntp import router as ntp_router
from netcontrol.api.v1.wifi import router as wifi_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["Health"])
v1_router.include_router(network_router, tags=["Network"])
v1_router.include_router(wifi_router, tags=["WiFi"])
v1_router.include_router(hotspot_router, tags=["SoftAP"])
v1_router.include_router(ntp_router, tags=["NTP"])
