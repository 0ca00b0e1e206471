import secrets

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from netcontrol.config import settings

logger = structlog.get_logger()

# Health probes stay reachable without the key
ACCESS_GATE_EXEMPT = {"/api/health", "/"}


class AccessGateMiddleware(BaseHTTPMiddleware):
    """Validates a shared access key when NETCTL_ACCESS_KEY is set.

    Unset means the API is only exposed on a trusted network and the
    middleware is a no-op. When set, every request must carry a matching
    X-Netctl-Access-Key header, except for exempt paths.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        expected = settings.netctl_access_key
        if not expected:
            return await call_next(request)

        if request.url.path in ACCESS_GATE_EXEMPT:
            return await call_next(request)

        provided = request.headers.get("x-netctl-access-key", "")
        if not provided or not secrets.compare_digest(provided, expected):
            logger.warning("access_gate_denied", path=request.url.path)
            return JSONResponse(
                status_code=403,
                content={
                    "error": {
                        "code": "access_denied",
                        "message": "Invalid or missing access key.",
                        "status": 403,
                    }
                },
            )

        return await call_next(request)
