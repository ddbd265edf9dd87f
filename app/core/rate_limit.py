"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Sliding window per client (source address, or the first X-Forwarded-For
  hop when configured), persisted in the data directory.
- Applied before the body is decoded or validated, so malformed and invalid
  submissions count against the client's budget too.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.json_file import JsonFileSlidingWindowRateLimiter
from app.core.config import settings
from app.core.errors import RateLimitAppError
from app.core.logging import hash_for_logs
from app.core.middleware import get_client_id

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again in an hour."


_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[str, int, int] | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return a process-wide rate limiter instance.

    Rebuilt when the relevant settings change (primarily in tests). State
    lives in the request log file, so rebuilding loses nothing.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = (
        str(settings.app.rate_limit_path),
        settings.app.max_requests_per_hour,
        settings.app.rate_limit_window_seconds,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = JsonFileSlidingWindowRateLimiter(
            path=settings.app.rate_limit_path,
            limit=settings.app.max_requests_per_hour,
            window_seconds=settings.app.rate_limit_window_seconds,
        )
        _limiter_config = config

    return _limiter


def enforce_rate_limit(
    request: Request,
    limiter: AbstractRateLimiter = Depends(get_rate_limiter),
) -> None:
    """FastAPI dependency enforcing the per-client submission budget.

    Declared as a plain function so FastAPI runs it in the threadpool; the
    limiter performs blocking file I/O under a lock.

    Raises:
        RateLimitAppError: 429 when the client exhausted its budget.
        StorageAppError: When the request log cannot be read or written.
    """

    if not settings.app.rate_limit_enabled:
        return

    client_id = get_client_id(request)
    client_hash = hash_for_logs(client_id)

    result = limiter.consume(client_id)
    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "client_hash": client_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_hash": client_hash,
            "limit": result.limit,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_at)

    raise RateLimitAppError(
        code="rate_limited",
        message=RATE_LIMIT_MESSAGE,
        details={"retry_after": retry_after},
        headers=headers or None,
    )
