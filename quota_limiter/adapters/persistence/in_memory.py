"""In-memory persistence provider.

Notes:
- Per-process only: running multiple workers gives each worker its own records.
- Updates on the same key are serialized with one asyncio.Lock per key, so
  different qualifiers never wait on each other. A key's lock lives only while
  some task holds or waits for it.
"""

from __future__ import annotations

import asyncio
import logging

from quota_limiter.adapters.persistence.base import (
    AbstractPersistenceProvider,
    PersistenceRecord,
    RecordUpdater,
)
from quota_limiter.adapters.timestamp.base import AbstractTimestampProvider
from quota_limiter.adapters.timestamp.system import SystemTimestampProvider

logger = logging.getLogger(__name__)


class InMemoryPersistenceProvider(AbstractPersistenceProvider):
    """Process-local record store, suitable for tests and single-worker hosts.

    A record whose ``expire_at`` has passed holds no usage inside any window.
    It reads as empty, and updates sweep such records out of the store at most
    once per ``sweep_interval_seconds``.
    """

    def __init__(
        self,
        timestamp_provider: AbstractTimestampProvider | None = None,
        *,
        sweep_interval_seconds: int = 60,
    ) -> None:
        """Initialize the store.

        Args:
            timestamp_provider: Clock compared against ``expire_at``; use the
                limiter's clock. Defaults to the host clock.
            sweep_interval_seconds: Minimum gap between two eviction sweeps.

        Raises:
            ValueError: If sweep_interval_seconds is negative.
        """
        if sweep_interval_seconds < 0:
            raise ValueError("sweep_interval_seconds must be >= 0")

        self._clock = timestamp_provider or SystemTimestampProvider()
        self._sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep_at: int | None = None
        self._records: dict[str, PersistenceRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def records(self) -> dict[str, PersistenceRecord]:
        """Snapshot of every stored record keyed by ``{namespace}_{key}``."""
        return dict(self._records)

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    async def update_and_get(
        self,
        namespace: str,
        key: str,
        updater: RecordUpdater,
    ) -> PersistenceRecord:
        storage_key = self._build_key(namespace, key)
        self._sweep_expired(self._clock.now_seconds())

        lock = self._checkout_lock(storage_key)
        try:
            async with lock:
                current = await self._load(storage_key)
                updated = updater(current)
                await self._save(storage_key, updated)
        finally:
            self._return_lock(storage_key)

        logger.debug(
            "persistence.updated",
            extra={
                "backend": "memory",
                "namespace": namespace,
                "usage_count": len(updated.usages),
            },
        )
        return updated

    async def get(self, namespace: str, key: str) -> PersistenceRecord:
        return await self._load(self._build_key(namespace, key))

    async def _load(self, storage_key: str) -> PersistenceRecord:
        record = self._records.get(storage_key)
        if record is None or self._is_expired(record, self._clock.now_seconds()):
            return PersistenceRecord.empty()
        return record

    async def _save(self, storage_key: str, record: PersistenceRecord) -> None:
        self._records[storage_key] = record

    def _checkout_lock(self, storage_key: str) -> asyncio.Lock:
        lock = self._locks.get(storage_key)
        if lock is None:
            lock = self._locks[storage_key] = asyncio.Lock()
        self._lock_users[storage_key] = self._lock_users.get(storage_key, 0) + 1
        return lock

    def _return_lock(self, storage_key: str) -> None:
        remaining = self._lock_users[storage_key] - 1
        if remaining:
            self._lock_users[storage_key] = remaining
            return
        del self._lock_users[storage_key]
        del self._locks[storage_key]

    def _sweep_expired(self, now: int) -> None:
        if self._next_sweep_at is not None and now < self._next_sweep_at:
            return
        self._next_sweep_at = now + self._sweep_interval_seconds

        # keys with an update in flight are left to that update
        expired = [
            storage_key
            for storage_key, record in self._records.items()
            if storage_key not in self._locks and self._is_expired(record, now)
        ]
        for storage_key in expired:
            del self._records[storage_key]

        if expired:
            logger.debug(
                "persistence.swept",
                extra={"backend": "memory", "evicted": len(expired)},
            )

    @staticmethod
    def _is_expired(record: PersistenceRecord, now: int) -> bool:
        return record.expire_at is not None and now >= record.expire_at

    @staticmethod
    def _build_key(namespace: str, key: str) -> str:
        return f"{namespace}_{key}"
