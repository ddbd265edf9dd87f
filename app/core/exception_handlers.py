"""Global exception handlers for consistent error responses.

Every failure is rendered as ``{"error": "<message>"}``:
- ValidationAppError / DuplicateSubmissionAppError -> 400
- PayloadTooLargeAppError -> 413
- RateLimitAppError -> 429 (with Retry-After / X-RateLimit-* headers)
- StorageAppError -> 500 with a generic message; details only go to logs
- Starlette HTTPException (404, 405, ...) -> its status code
- Unexpected Exception -> generic 500 (safety net)

The request id travels in the X-Request-ID response header.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    AppError,
    DuplicateSubmissionAppError,
    PayloadTooLargeAppError,
    RateLimitAppError,
    StorageAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (DuplicateSubmissionAppError, 400),
    (PayloadTooLargeAppError, 413),
    (RateLimitAppError, 429),
    (StorageAppError, 500),
)

_HTTP_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (400 by default)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors.

    Client-facing errors are logged at info/warning level without their
    details; storage failures are logged as errors with full details while
    the client only receives the error's generic message.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code.
    """
    status_code = status_code_for(exc)

    if status_code >= 500:
        logger.error(
            "app_error_handled",
            extra={
                "error_code": exc.code,
                "status_code": status_code,
                "details": dict(exc.details or {}),
                "request_path": request.url.path,
                "request_id": get_request_id(),
            },
        )
    else:
        logger.info(
            "app_error_handled",
            extra={
                "error_code": exc.code,
                "status_code": status_code,
                "request_id": get_request_id(),
            },
        )

    headers = exc.headers if isinstance(exc, RateLimitAppError) else None
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown path, wrong method) as ``{"error": ...}``."""
    message = _HTTP_MESSAGES.get(exc.status_code, str(exc.detail))
    if exc.status_code == 405:
        logger.info(
            "method_not_allowed",
            extra={"request_method": request.method, "request_path": request.url.path},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces or internals reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={"error": GENERIC_ERROR_MESSAGE},
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
