"""Size-limited JSON request body decoding."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request

from app.core.config import settings
from app.core.errors import PayloadTooLargeAppError, ValidationAppError

logger = logging.getLogger(__name__)

EMPTY_BODY_MESSAGE = "No data received"
INVALID_JSON_MESSAGE = "Invalid JSON data"
TOO_LARGE_MESSAGE = "Request body too large"


def _too_large(size: int, max_bytes: int, reason: str) -> PayloadTooLargeAppError:
    logger.warning(
        "request_body.too_large",
        extra={"reason": reason, "size": size, "max_bytes": max_bytes},
    )
    return PayloadTooLargeAppError(
        code="payload_too_large",
        message=TOO_LARGE_MESSAGE,
        details={"max_bytes": max_bytes},
    )


async def read_body_limited(request: Request) -> bytes:
    """Read the raw request body enforcing ``max_body_bytes``.

    The declared Content-Length is checked first; the streamed size is
    enforced as well since the header can be absent or wrong.

    Raises:
        PayloadTooLargeAppError: If the body exceeds the configured limit.
    """
    max_bytes = settings.app.max_body_bytes

    declared = request.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise _too_large(int(declared), max_bytes, "content_length")

    size = 0
    chunks: list[bytes] = []
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise _too_large(size, max_bytes, "streamed")
        chunks.append(chunk)

    return b"".join(chunks)


async def read_json_body(request: Request) -> dict[str, Any]:
    """FastAPI dependency decoding the body into a JSON object.

    Returns:
        The decoded JSON object.

    Raises:
        ValidationAppError: If the body is empty, not valid JSON, or not an object.
        PayloadTooLargeAppError: If the body exceeds the configured limit.
    """
    raw = await read_body_limited(request)
    if not raw.strip():
        logger.info("request_body.empty")
        raise ValidationAppError(code="empty_body", message=EMPTY_BODY_MESSAGE)

    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # RecursionError: nesting deeper than the decoder supports
        logger.info("request_body.invalid_json", extra={"error_msg": str(exc)})
        raise ValidationAppError(code="invalid_json", message=INVALID_JSON_MESSAGE) from exc

    if not isinstance(payload, dict):
        logger.info(
            "request_body.invalid_json",
            extra={"error_msg": f"expected object, got {type(payload).__name__}"},
        )
        raise ValidationAppError(code="invalid_json", message=INVALID_JSON_MESSAGE)

    return payload
