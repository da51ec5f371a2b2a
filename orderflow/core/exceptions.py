"""
Error taxonomy for the order flow API.

Every domain error is an HTTPException carrying an ``error_code`` and a
``retryable`` flag so callers can tell transient failures (retry the same
request) from terminal ones (fix the input or the permissions first).
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class AppError(HTTPException):
    """Base class for all domain errors."""

    error_code = "APP_ERROR"
    retryable = False

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        if error_code is not None:
            self.error_code = error_code
        if retryable is not None:
            self.retryable = retryable


class ValidationFailed(AppError):
    """Input rejected before any write (missing note, bad value)."""

    error_code = "VALIDATION_FAILED"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message)
        self.field = field


class PermissionDenied(AppError):
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(status.HTTP_403_FORBIDDEN, message)


class NotFoundError(AppError):
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(status.HTTP_404_NOT_FOUND, message)


class InvalidTransition(AppError):
    """Action is not allowed from the entity's current state."""

    error_code = "INVALID_TRANSITION"

    def __init__(self, message: str):
        super().__init__(status.HTTP_409_CONFLICT, message)


class ConflictError(AppError):
    error_code = "CONFLICT"

    def __init__(self, message: str):
        super().__init__(status.HTTP_409_CONFLICT, message)


class StaleWriteError(AppError):
    """Row changed since the caller read it; re-read and retry."""

    error_code = "STALE_WRITE"
    retryable = True

    def __init__(self, message: str = "Record was modified by another user. Reload and try again."):
        super().__init__(status.HTTP_409_CONFLICT, message)


class ConfigurationError(AppError):
    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


class UpstreamError(AppError):
    """External provider (email, translation) failed."""

    error_code = "UPSTREAM_ERROR"
    retryable = True

    def __init__(self, message: str):
        super().__init__(status.HTTP_502_BAD_GATEWAY, message)


def error_payload(exc: HTTPException) -> dict:
    return {
        "detail": exc.detail,
        "error_code": getattr(exc, "error_code", "HTTP_ERROR"),
        "retryable": getattr(exc, "retryable", False),
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc), headers=exc.headers)
