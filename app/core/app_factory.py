"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests and the ASGI entry point build the same application.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import health_router, submissions_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import cors_headers_middleware, request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Contest Form API",
        description=(
            "Accepts contest entry forms (name, company, email, phone), limits "
            "submissions per client over a sliding one-hour window, rejects "
            "emails that were already entered and stores accepted entries in a "
            "JSON ledger."
        ),
        version="0.1.0",
    )

    # Middleware (last registered runs first): CORS wraps the request id
    # middleware so it also decorates the 500s rendered there
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(cors_headers_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(submissions_router, prefix="/v1")
    app.include_router(health_router)

    return app
