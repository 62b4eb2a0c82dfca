"""
Unified error handling for consistent API error responses.

All API errors use this format:
{
    "error": {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "detail": "Optional additional context"
    }
}

Domain errors raised by the pipeline (missing snapshot, missing
configuration) are translated by ``fantasy_gm_error_handler``.
"""

from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ..core.errors import ConfigurationError, FantasyGMError, SnapshotNotFoundError, TeamNotFoundError


class APIError(HTTPException):
    """Base API error class for consistent error responses."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        detail: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.code = code
        self.message = message
        self.error_detail = detail
        super().__init__(
            status_code=status_code,
            detail={"code": code, "message": message, "detail": detail},
            headers=headers,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: Any = None, message: str | None = None):
        super().__init__(
            status_code=404,
            code="NOT_FOUND",
            message=message or f"{resource} not found",
            detail=f"{resource} with ID {identifier}" if identifier is not None else None,
        )


class ValidationError(APIError):
    """Invalid input (400)."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            status_code=400,
            code="VALIDATION_ERROR",
            message=message,
            detail=detail,
        )


class UnauthorizedError(APIError):
    """Missing or wrong bearer token (401)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            status_code=401,
            code="UNAUTHORIZED",
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ServiceUnavailableError(APIError):
    """Service not configured (503)."""

    def __init__(self, service: str, message: str | None = None):
        super().__init__(
            status_code=503,
            code="SERVICE_UNAVAILABLE",
            message=message or f"{service} is currently unavailable",
            detail=f"The {service} service is not configured or experiencing issues",
        )


def _content(exc: APIError) -> dict[str, Any]:
    content = {
        "error": {
            "code": exc.code,
            "message": exc.message,
        }
    }
    if exc.error_detail:
        content["error"]["detail"] = exc.error_detail
    return content


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """
    FastAPI exception handler for APIError.

    Converts APIError exceptions to consistent JSON responses.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_content(exc),
        headers=exc.headers,
    )


def to_api_error(exc: FantasyGMError) -> APIError:
    """Map a domain error onto its HTTP counterpart."""
    if isinstance(exc, SnapshotNotFoundError):
        return NotFoundError("Snapshot", message=exc.message)
    if isinstance(exc, TeamNotFoundError):
        return NotFoundError("Team", exc.team_id, message=exc.message)
    if isinstance(exc, ConfigurationError):
        return ServiceUnavailableError("ESPN", message=exc.message)
    return APIError(status_code=500, code="INTERNAL_ERROR", message=exc.message)


async def fantasy_gm_error_handler(request: Request, exc: FantasyGMError) -> JSONResponse:
    """FastAPI exception handler for domain errors."""
    return await api_error_handler(request, to_api_error(exc))
