from __future__ import annotations

from quota_limiter.api.routes.health import router as health_router
from quota_limiter.api.routes.quota import router as quota_router

__all__ = ["health_router", "quota_router"]
