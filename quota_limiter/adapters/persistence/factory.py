"""Factory pattern for creating persistence provider instances."""

from quota_limiter.adapters.persistence.base import AbstractPersistenceProvider
from quota_limiter.adapters.persistence.in_memory import InMemoryPersistenceProvider
from quota_limiter.adapters.persistence.redis_provider import RedisPersistenceProvider
from quota_limiter.core.config import LimiterSettings
from quota_limiter.core.errors import ConfigurationAppError


def create_persistence_provider(limiter_settings: LimiterSettings) -> AbstractPersistenceProvider:
    """Instantiate the persistence backend named in the limiter settings.

    Args:
        limiter_settings: Resolved limiter settings.

    Returns:
        AbstractPersistenceProvider: Configured provider instance.

    Raises:
        ConfigurationAppError: If the backend is unknown or misconfigured.
    """
    backend = limiter_settings.backend.lower()

    if backend == "memory":
        return InMemoryPersistenceProvider()

    if backend == "redis":
        if not limiter_settings.redis_url:
            raise ConfigurationAppError(
                code="redis_missing_url",
                message="Redis backend requires LIMITER_REDIS_URL environment variable",
                details={"backend": backend, "field": "redis_url"},
            )
        return RedisPersistenceProvider.from_url(
            limiter_settings.redis_url,
            key_prefix=limiter_settings.redis_key_prefix,
            max_attempts=limiter_settings.max_attempts,
        )

    raise ConfigurationAppError(
        code="unknown_backend",
        message=(
            f"Unknown persistence backend: '{backend}'. Supported backends: memory, redis"
        ),
        details={"backend": backend, "field": "backend"},
    )
