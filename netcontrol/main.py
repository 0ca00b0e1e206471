from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from netcontrol.api.v1.router import v1_router
from netcontrol.config import settings
from netcontrol.core.access_gate import AccessGateMiddleware
from netcontrol.core.exceptions import NetControlError, netcontrol_error_handler
from netcontrol.core.executor import SubprocessExecutor
from netcontrol.core.middleware import RequestLoggingMiddleware
from netcontrol.services.orchestrator import NetworkOrchestrator

_NAME_TO_LEVEL = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "warn": 30,
    "error": 40,
    "critical": 50,
}

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        _NAME_TO_LEVEL.get(settings.netctl_log_level.lower(), 20)
    ),
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    executor = SubprocessExecutor(
        default_timeout=settings.netctl_command_timeout,
        use_sudo=settings.netctl_use_sudo,
    )
    app.state.orchestrator = NetworkOrchestrator.from_settings(executor, settings)

    logger.info(
        "netcontrol_starting",
        host=settings.netctl_host,
        port=settings.netctl_port,
        use_sudo=settings.netctl_use_sudo,
        access_gate=bool(settings.netctl_access_key),
    )
    yield
    logger.info("netcontrol_stopping")


app = FastAPI(
    title="Network Control API",
    description="Interface addressing, WiFi, hotspot and time-sync control for a NetworkManager host",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(NetControlError, netcontrol_error_handler)

# Starlette: last-added = outermost.
# 1. RequestLogging (outermost): logs all requests including gate rejections
# 2. CORS: handles preflight before the gate
# 3. AccessGate: shared secret check when configured
app.add_middleware(AccessGateMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.netctl_cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(v1_router)


@app.get("/")
async def root():
    return {"service": "netcontrol", "version": "0.1.0"}


def run() -> None:
    """Entry point for `netcontrol-api`."""
    import uvicorn

    uvicorn.run("netcontrol.main:app", host=settings.netctl_host, port=settings.netctl_port)
