"""Persistence adapters for usage records.

The limiter depends only on ``AbstractPersistenceProvider``; the in-memory
provider serves single-process hosts and tests, the Redis provider shares
records across workers.
"""

from quota_limiter.adapters.persistence.base import (
    AbstractPersistenceProvider,
    PersistenceRecord,
    RecordUpdater,
)
from quota_limiter.adapters.persistence.factory import create_persistence_provider
from quota_limiter.adapters.persistence.in_memory import InMemoryPersistenceProvider
from quota_limiter.adapters.persistence.redis_provider import RedisPersistenceProvider

__all__ = [
    "AbstractPersistenceProvider",
    "InMemoryPersistenceProvider",
    "PersistenceRecord",
    "RecordUpdater",
    "RedisPersistenceProvider",
    "create_persistence_provider",
]
