from fastapi import Request
from fastapi.responses import JSONResponse


class NetControlError(Exception):
    """Base exception for network control errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status: int = 500,
        details: dict | None = None,
    ):
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result


class PreconditionError(NetControlError):
    """Host is not in a state where the operation can start. Never retried."""

    def __init__(self, message: str, code: str = "precondition_failed", details: dict | None = None):
        super().__init__(code=code, message=message, status=409, details=details)


class InvalidConfigError(PreconditionError):
    """Request is malformed; rejected before any host command is issued."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message=message, code="invalid_config", details=details)
        self.status = 422


class ApplyError(NetControlError):
    """A mandatory mutation command failed. Caller must resubmit."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(code="apply_failed", message=message, status=502, details=details)


class PostValidationError(NetControlError):
    """Configuration was applied but never came up within the allowed attempts."""

    def __init__(self, message: str, attempts: int, details: dict | None = None):
        merged = {"attempts": attempts}
        merged.update(details or {})
        super().__init__(code="post_validation_failed", message=message, status=504, details=merged)
        self.attempts = attempts


class NotFoundError(NetControlError):
    def __init__(self, message: str = "Resource not found.", details: dict | None = None):
        super().__init__(code="not_found", message=message, status=404, details=details)


class CommandUnavailableError(NetControlError):
    def __init__(self, message: str = "Host command failed.", details: dict | None = None):
        super().__init__(
            code="command_unavailable",
            message=message,
            status=503,
            details=details or {"suggestion": "Check that NetworkManager and systemd-timesyncd are running."},
        )


async def netcontrol_error_handler(request: Request, exc: NetControlError) -> JSONResponse:
    """Global exception handler for NetControlError and subclasses."""
    return JSONResponse(status_code=exc.status, content=exc.to_dict())
