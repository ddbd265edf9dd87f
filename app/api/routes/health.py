from __future__ import annotations

import os
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.config import settings

router = APIRouter(tags=["Health"])


def _storage_available() -> bool:
    data_dir = Path(settings.app.data_dir)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return os.access(data_dir, os.W_OK | os.X_OK)


@router.get("/health")
def health_check() -> JSONResponse:
    """Health check endpoint.

    Reports whether the data directory can hold the rate limit log and the
    submission ledger. Used by load balancers and monitoring systems.

    Returns:
        200 with ``{"status": "ok", "storage": "ok"}``, or 503 with
        ``{"status": "degraded", "storage": "unavailable"}``.
    """

    if _storage_available():
        return JSONResponse(status_code=200, content={"status": "ok", "storage": "ok"})
    return JSONResponse(
        status_code=503,
        content={"status": "degraded", "storage": "unavailable"},
    )
