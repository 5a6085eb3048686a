"""FastAPI routes and API modules for WasteWatch.

Provides common response models, error handlers, and utilities.
"""

from typing import Any, Generic, TypeVar

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..workflow import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    NoAvailableWorkerError,
    NotPermittedError,
    ReportNotFoundError,
    WorkflowError,
)

T = TypeVar("T")


# =========================
# Response Models
# =========================


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    error: str | None = None


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    error_code: str
    details: list[ErrorDetail] | None = None


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Success envelope for handlers that build plain dict payloads."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


# =========================
# Exception Classes
# =========================


class APIError(HTTPException):
    """Base API error with structured response."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: list[ErrorDetail] | None = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class BadRequestError(APIError):
    """Request is well-formed but cannot be acted on."""

    def __init__(self, message: str):
        super().__init__(status_code=400, error_code="BAD_REQUEST", message=message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=404,
            error_code="NOT_FOUND",
            message=f"{resource} not found: {identifier}",
        )


class ConflictError(APIError):
    """Request conflicts with the resource's current state."""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(status_code=409, error_code=error_code, message=message)


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str, details: list[ErrorDetail] | None = None):
        super().__init__(
            status_code=422,
            error_code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class AuthenticationError(APIError):
    """Authentication required error."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=401,
            error_code="AUTHENTICATION_REQUIRED",
            message=message,
        )


class AuthorizationError(APIError):
    """Authorization denied error."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            status_code=403,
            error_code="ACCESS_DENIED",
            message=message,
        )


class RateLimitError(APIError):
    """Rate limit exceeded error."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            message=f"Rate limit exceeded. Retry after {retry_after} seconds.",
        )
        self.retry_after = retry_after


def workflow_error_to_api(exc: WorkflowError) -> APIError:
    """Translate a lifecycle failure into its HTTP error."""
    if isinstance(exc, ReportNotFoundError):
        return NotFoundError("Report", exc.report_id)
    if isinstance(exc, NotPermittedError):
        return AuthorizationError(str(exc))
    if isinstance(exc, InvalidTransitionError):
        return ConflictError(str(exc), error_code="INVALID_TRANSITION")
    if isinstance(exc, ConcurrentUpdateError):
        return ConflictError(str(exc), error_code="CONCURRENT_UPDATE")
    if isinstance(exc, NoAvailableWorkerError):
        return ConflictError(str(exc), error_code="NO_AVAILABLE_WORKER")
    return BadRequestError(str(exc))


# =========================
# Exception Handlers
# =========================


def error_response(exc: APIError) -> JSONResponse:
    """Render an APIError as the standard error body.

    Middleware returns this directly; exceptions raised there never reach the handlers.
    """
    headers = {"X-Error-Code": exc.error_code}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            error_code=exc.error_code,
            details=exc.details,
        ).model_dump(),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return error_response(exc)


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Handle lifecycle errors that reach the app unconverted."""
    return await api_error_handler(request, workflow_error_to_api(exc))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Reshape FastAPI validation failures into the standard error body."""
    details = [
        ErrorDetail(
            code=str(error.get("type", "invalid")),
            message=str(error.get("msg", "Invalid value")),
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body") or None,
        )
        for error in exc.errors()
    ]
    message = details[0].message if details else "Invalid request"
    return await api_error_handler(request, ValidationError(message, details=details))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            error_code="HTTP_ERROR",
        ).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    from wastewatch.logging import get_logger

    logger = get_logger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(WorkflowError, workflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
