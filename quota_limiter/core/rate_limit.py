"""Rate limiting dependencies for FastAPI routes.

This module wires the sliding-window limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on dependency functions only.
- Swap-friendly: the persistence backend is chosen from settings.
- Qualifier per caller: the X-API-Key header when present, else client IP.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from quota_limiter.core.config import settings
from quota_limiter.core.logging import hash_identifier
from quota_limiter.limiter.facade import RateLimiter

logger = logging.getLogger(__name__)


_limiter: RateLimiter | None = None
_limiter_config: tuple | None = None


def get_rate_limiter() -> RateLimiter:
    """Return a process-wide rate limiter instance.

    The instance is cached in-module so the in-memory backend keeps its
    records across requests. If configuration changes (primarily in tests),
    the limiter is rebuilt.

    Returns:
        RateLimiter: Configured limiter instance.

    Raises:
        ConfigurationAppError: If the limiter settings are invalid.
    """

    global _limiter, _limiter_config

    limiter_settings = settings.limiter
    config = (
        limiter_settings.name,
        limiter_settings.period_seconds,
        limiter_settings.max_calls,
        limiter_settings.debug,
        limiter_settings.backend,
        limiter_settings.redis_url,
        limiter_settings.redis_key_prefix,
        limiter_settings.max_attempts,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = RateLimiter.from_settings(limiter_settings)
        _limiter_config = config
        logger.info(
            "rate_limit.limiter_built",
            extra={
                "limiter": limiter_settings.name,
                "backend": limiter_settings.backend,
                "limit": limiter_settings.max_calls,
                "window_s": limiter_settings.period_seconds,
            },
        )

    return _limiter


def _build_rate_limit_key(request: Request, x_api_key: str | None) -> str:
    """Build the limiter qualifier for the current request.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced qualifier.
    """

    if x_api_key:
        return f"api_key:{x_api_key}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing the configured quota.

    When enabled, records one usage for the caller. If the caller has used up
    its quota, raises HTTP 429.

    Raises:
        HTTPException: 429 Too Many Requests when the quota is exceeded.
    """

    if not settings.app.rate_limit_enabled:
        return

    key = _build_rate_limit_key(request, x_api_key)
    key_type = "api_key" if x_api_key else "ip"
    configuration = limiter.configuration

    exceeded = await limiter.check_and_record(key)
    log_fields = {
        "key_type": key_type,
        "key_hash": hash_identifier(key),
        "limit": configuration.max_calls,
        "window_s": configuration.period_seconds,
    }
    if not exceeded:
        logger.info("rate_limit.allowed", extra=log_fields)
        return

    logger.warning("rate_limit.exceeded", extra=log_fields)

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(configuration.period_seconds)
        headers["X-RateLimit-Limit"] = str(configuration.max_calls)
        headers["X-RateLimit-Window"] = str(configuration.period_seconds)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers or None,
    )
