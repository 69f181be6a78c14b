"""Persistence-backed sliding-window rate limiter."""

from quota_limiter.adapters.persistence import (
    AbstractPersistenceProvider,
    InMemoryPersistenceProvider,
    PersistenceRecord,
    RedisPersistenceProvider,
)
from quota_limiter.adapters.timestamp import AbstractTimestampProvider, SystemTimestampProvider
from quota_limiter.core.errors import (
    AppError,
    ConfigurationAppError,
    PersistenceAppError,
    QuotaExceededAppError,
    ValidationAppError,
)
from quota_limiter.limiter import (
    DEFAULT_QUALIFIER,
    GenericRateLimiter,
    RateLimiter,
    RateLimiterConfiguration,
)

__all__ = [
    "DEFAULT_QUALIFIER",
    "AbstractPersistenceProvider",
    "AbstractTimestampProvider",
    "AppError",
    "ConfigurationAppError",
    "GenericRateLimiter",
    "InMemoryPersistenceProvider",
    "PersistenceAppError",
    "PersistenceRecord",
    "QuotaExceededAppError",
    "RateLimiter",
    "RateLimiterConfiguration",
    "RedisPersistenceProvider",
    "SystemTimestampProvider",
    "ValidationAppError",
]
