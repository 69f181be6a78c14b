"""Redis-backed persistence provider.

Each usage record is one JSON document under ``{prefix}{namespace}:{key}``.
Updates use optimistic transactions (WATCH/MULTI/EXEC): if another client
changes the key between the read and the commit, EXEC aborts and the update is
recomputed from fresh data, up to ``max_attempts`` times.
"""

from __future__ import annotations

import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from quota_limiter.adapters.persistence.base import (
    AbstractPersistenceProvider,
    PersistenceRecord,
    RecordUpdater,
)
from quota_limiter.core.errors import PersistenceAppError

logger = logging.getLogger(__name__)


class RedisPersistenceProvider(AbstractPersistenceProvider):
    """Shared record store for multi-worker and multi-host deployments.

    When a record carries an ``expire_at`` hint the key is given a matching
    EXPIREAT, so Redis collects records whose usages have all decayed.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "quota:",
        max_attempts: int = 5,
    ) -> None:
        """Initialize the provider.

        Args:
            redis: Async Redis client.
            key_prefix: Prefix applied to every key written by the provider.
            max_attempts: Transaction attempts before an update fails.

        Raises:
            ValueError: If max_attempts is invalid.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self._redis = redis
        self._key_prefix = key_prefix
        self._max_attempts = max_attempts

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        key_prefix: str = "quota:",
        max_attempts: int = 5,
    ) -> "RedisPersistenceProvider":
        """Build a provider around a new client for ``url``."""
        return cls(
            Redis.from_url(url, decode_responses=True),
            key_prefix=key_prefix,
            max_attempts=max_attempts,
        )

    async def update_and_get(
        self,
        namespace: str,
        key: str,
        updater: RecordUpdater,
    ) -> PersistenceRecord:
        redis_key = self._build_key(namespace, key)

        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._try_update(redis_key, updater)
            except WatchError:
                logger.info(
                    "persistence.retry",
                    extra={
                        "backend": "redis",
                        "namespace": namespace,
                        "attempt": attempt,
                        "max_attempts": self._max_attempts,
                    },
                )
            except RedisError as exc:
                logger.error(
                    "persistence.unavailable",
                    extra={
                        "backend": "redis",
                        "namespace": namespace,
                        "error_type": type(exc).__name__,
                    },
                )
                raise PersistenceAppError(
                    code="store_unavailable",
                    message="Redis could not complete the usage update",
                    details={"backend": "redis", "namespace": namespace},
                ) from exc

        logger.warning(
            "persistence.update_failed",
            extra={
                "backend": "redis",
                "namespace": namespace,
                "max_attempts": self._max_attempts,
            },
        )
        raise PersistenceAppError(
            code="update_failed",
            message=(
                f"Usage record could not be committed after {self._max_attempts} attempts"
            ),
            details={
                "backend": "redis",
                "namespace": namespace,
                "attempts": self._max_attempts,
            },
        )

    async def get(self, namespace: str, key: str) -> PersistenceRecord:
        try:
            raw = await self._redis.get(self._build_key(namespace, key))
        except RedisError as exc:
            raise PersistenceAppError(
                code="store_unavailable",
                message="Redis could not read the usage record",
                details={"backend": "redis", "namespace": namespace},
            ) from exc
        return self._decode(raw)

    async def _try_update(self, redis_key: str, updater: RecordUpdater) -> PersistenceRecord:
        async with self._redis.pipeline(transaction=True) as pipe:
            await pipe.watch(redis_key)
            current = self._decode(await pipe.get(redis_key))
            updated = updater(current)

            if updated == current:
                await pipe.unwatch()
                return updated

            pipe.multi()
            pipe.set(redis_key, self._encode(updated))
            if updated.expire_at is not None:
                pipe.expireat(redis_key, updated.expire_at)
            await pipe.execute()
            return updated

    def _build_key(self, namespace: str, key: str) -> str:
        return f"{self._key_prefix}{namespace}:{key}"

    @staticmethod
    def _encode(record: PersistenceRecord) -> str:
        return json.dumps(record.to_stored(), separators=(",", ":"))

    @staticmethod
    def _decode(raw: str | bytes | None) -> PersistenceRecord:
        if raw is None:
            return PersistenceRecord.empty()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise PersistenceAppError(
                code="record_invalid",
                message="Stored usage record is not valid JSON",
            ) from exc
        return PersistenceRecord.from_stored(data)
