"""HTTP middleware for request correlation, access logging and CORS headers.

Usage:
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(cors_headers_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.exception_handlers import general_exception_handler
from app.core.logging import clear_request_id, hash_for_logs, set_request_id

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = "POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type"


def get_client_id(request: Request) -> str:
    """Identify the requesting client for rate limiting and logs.

    Uses the first X-Forwarded-For hop only when ``trust_forwarded_for`` is
    enabled (i.e. the service sits behind a proxy that sets the header).
    """
    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    return request.client.host if request.client else "0.0.0.0"


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id to the request and log its completion.

    The id is taken from the configured request id header or generated, kept
    in contextvars for the request lifetime and echoed in the response
    together with ``X-Request-Duration-ms``. Unhandled exceptions are
    turned into the generic 500 here, so error responses carry the same
    headers as any other.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with correlation headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            # Rendered here so the 500 still passes through the header middlewares
            response = await general_exception_handler(request, exc)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_hash": hash_for_logs(get_client_id(request)),
                "user_agent": request.headers.get("User-Agent", "unknown"),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def cors_headers_middleware(request: Request, call_next) -> Response:
    """Add the form's CORS headers to every response.

    Pre-flight requests are answered by the route's OPTIONS handler, which
    returns an empty 200 body.
    """

    response: Response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = settings.app.cors_allow_origin
    response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
    response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
    return response
