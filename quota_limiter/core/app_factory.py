"""Application factory for the FastAPI host.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated app instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from quota_limiter.api.routes import health_router, quota_router
from quota_limiter.core.config import settings
from quota_limiter.core.exception_handlers import setup_exception_handlers
from quota_limiter.core.logging import configure_logging
from quota_limiter.core.middleware import correlation_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Quota Limiter",
        description=(
            "Sliding-window rate limiter service. Checks whether a qualifier has "
            "exceeded its quota within the trailing window and records admitted "
            "calls atomically in the configured persistence backend."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.middleware("http")(correlation_middleware)

    setup_exception_handlers(app)

    app.include_router(quota_router, prefix="/v1")
    app.include_router(health_router)

    return app
