"""Tests for the Redis persistence provider against an in-process fake client."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from quota_limiter.adapters.persistence.base import PersistenceRecord
from quota_limiter.adapters.persistence.redis_provider import RedisPersistenceProvider
from quota_limiter.core.errors import PersistenceAppError
from quota_limiter.limiter.configuration import RateLimiterConfiguration
from quota_limiter.limiter.generic import GenericRateLimiter


class FakePipeline:
    """Mimics the subset of redis.asyncio.Pipeline used by the provider."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._queued: list[tuple[str, tuple]] = []
        self.unwatched = False

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._queued.clear()

    async def watch(self, key: str) -> None:
        self._redis.check_failure()
        self._redis.watch_calls.append(key)

    async def get(self, key: str) -> str | None:
        self._redis.check_failure()
        return self._redis.data.get(key)

    async def unwatch(self) -> None:
        self.unwatched = True

    def multi(self) -> None:
        pass

    def set(self, key: str, value: str) -> "FakePipeline":
        self._queued.append(("set", (key, value)))
        return self

    def expireat(self, key: str, when: int) -> "FakePipeline":
        self._queued.append(("expireat", (key, when)))
        return self

    async def execute(self) -> list:
        if self._redis.conflicts:
            self._redis.conflicts -= 1
            raise WatchError("Watched variable changed.")
        for command, args in self._queued:
            if command == "set":
                key, value = args
                self._redis.data[key] = value
                self._redis.set_calls.append(key)
            else:
                self._redis.expireat_calls.append(args)
        return [True] * len(self._queued)


class FakeRedis:
    def __init__(self, *, conflicts: int = 0, failure: Exception | None = None) -> None:
        self.data: dict[str, str] = {}
        self.conflicts = conflicts
        self.failure = failure
        self.watch_calls: list[str] = []
        self.set_calls: list[str] = []
        self.expireat_calls: list[tuple[str, int]] = []

    def check_failure(self) -> None:
        if self.failure is not None:
            raise self.failure

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def get(self, key: str) -> str | None:
        self.check_failure()
        return self.data.get(key)


def _append(value: int, expire_at: int | None = None):
    def updater(record: PersistenceRecord) -> PersistenceRecord:
        return PersistenceRecord(usages=[*record.usages, value], expire_at=expire_at)

    return updater


@pytest.mark.asyncio
async def test_update_writes_wire_shape_under_prefixed_key() -> None:
    redis = FakeRedis()
    provider = RedisPersistenceProvider(redis, key_prefix="q:")

    await provider.update_and_get("ns", "user", _append(100, expire_at=160))

    assert json.loads(redis.data["q:ns:user"]) == {"u": [100], "expireAt": 160}
    assert redis.expireat_calls == [("q:ns:user", 160)]


@pytest.mark.asyncio
async def test_get_returns_empty_record_when_missing() -> None:
    provider = RedisPersistenceProvider(FakeRedis())

    assert await provider.get("ns", "nobody") == PersistenceRecord.empty()


@pytest.mark.asyncio
async def test_get_accepts_records_without_expiry_hint() -> None:
    redis = FakeRedis()
    redis.data["quota:ns:user"] = json.dumps({"u": [1, 2]})
    provider = RedisPersistenceProvider(redis)

    record = await provider.get("ns", "user")

    assert record.usages == [1, 2]
    assert record.expire_at is None


@pytest.mark.asyncio
async def test_watch_conflict_is_retried_with_fresh_data() -> None:
    redis = FakeRedis(conflicts=2)
    provider = RedisPersistenceProvider(redis, max_attempts=3)
    attempts: list[list[int]] = []

    def updater(record: PersistenceRecord) -> PersistenceRecord:
        attempts.append(list(record.usages))
        return PersistenceRecord(usages=[*record.usages, 5])

    record = await provider.update_and_get("ns", "user", updater)

    assert record.usages == [5]
    assert len(attempts) == 3
    assert len(redis.watch_calls) == 3


@pytest.mark.asyncio
async def test_update_fails_when_retry_budget_is_exhausted() -> None:
    redis = FakeRedis(conflicts=10)
    provider = RedisPersistenceProvider(redis, max_attempts=3)

    with pytest.raises(PersistenceAppError) as exc_info:
        await provider.update_and_get("ns", "user", _append(1))

    assert exc_info.value.code == "update_failed"
    assert exc_info.value.details["attempts"] == 3
    assert redis.data == {}


@pytest.mark.asyncio
async def test_connection_errors_become_store_unavailable() -> None:
    provider = RedisPersistenceProvider(FakeRedis(failure=RedisConnectionError("down")))

    with pytest.raises(PersistenceAppError) as update_exc:
        await provider.update_and_get("ns", "user", _append(1))
    with pytest.raises(PersistenceAppError) as get_exc:
        await provider.get("ns", "user")

    assert update_exc.value.code == "store_unavailable"
    assert get_exc.value.code == "store_unavailable"


@pytest.mark.asyncio
async def test_unchanged_record_is_not_rewritten() -> None:
    redis = FakeRedis()
    redis.data["quota:ns:user"] = json.dumps({"u": [3], "expireAt": None})
    provider = RedisPersistenceProvider(redis)

    record = await provider.update_and_get("ns", "user", lambda current: current)

    assert record.usages == [3]
    assert redis.set_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", ["not json", json.dumps([1, 2]), json.dumps({"u": "x"})])
async def test_malformed_records_are_rejected(stored: str) -> None:
    redis = FakeRedis()
    redis.data["quota:ns:user"] = stored
    provider = RedisPersistenceProvider(redis)

    with pytest.raises(PersistenceAppError) as exc_info:
        await provider.get("ns", "user")

    assert exc_info.value.code == "record_invalid"


def test_invalid_max_attempts() -> None:
    with pytest.raises(ValueError):
        RedisPersistenceProvider(FakeRedis(), max_attempts=0)


@pytest.mark.asyncio
async def test_limiter_over_redis_scenario(clock) -> None:
    redis = FakeRedis()
    limiter = GenericRateLimiter(
        RateLimiterConfiguration(name="ns", max_calls=1, period_seconds=10),
        RedisPersistenceProvider(redis),
        clock,
    )

    clock.set(100)
    assert await limiter.check_and_record("user") is False
    clock.set(105)
    assert await limiter.check_and_record("user") is True
    clock.set(111)
    assert await limiter.check_and_record("user") is False

    assert json.loads(redis.data["quota:ns:user"]) == {"u": [111], "expireAt": 121}
    # the exceeded call at t=105 left the record untouched
    assert redis.set_calls == ["quota:ns:user", "quota:ns:user"]


@patch("quota_limiter.adapters.persistence.redis_provider.Redis")
def test_from_url_forwards_provider_options(mock_redis) -> None:
    provider = RedisPersistenceProvider.from_url(
        "redis://cache:6379/2", key_prefix="limits:", max_attempts=2
    )

    mock_redis.from_url.assert_called_once_with("redis://cache:6379/2", decode_responses=True)
    assert provider._redis is mock_redis.from_url.return_value
    assert provider._key_prefix == "limits:"
    assert provider._max_attempts == 2


@patch("quota_limiter.adapters.persistence.redis_provider.Redis")
def test_from_url_rejects_invalid_max_attempts(mock_redis) -> None:
    with pytest.raises(ValueError):
        RedisPersistenceProvider.from_url("redis://cache:6379/2", max_attempts=0)
