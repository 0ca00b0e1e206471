from fastapi import Request

from netcontrol.services.orchestrator import NetworkOrchestrator


def get_orchestrator(request: Request) -> NetworkOrchestrator:
    """Return the orchestrator stored on app state during lifespan."""
    return request.app.state.orchestrator
