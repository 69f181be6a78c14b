"""Tests for the public RateLimiter facade."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from quota_limiter.adapters.persistence.in_memory import InMemoryPersistenceProvider
from quota_limiter.core.config import LimiterSettings
from quota_limiter.core.errors import (
    ConfigurationAppError,
    QuotaExceededAppError,
    ValidationAppError,
)
from quota_limiter.limiter.facade import DEFAULT_QUALIFIER, RateLimiter


class RejectedError(Exception):
    pass


@pytest.fixture
def provider(clock) -> InMemoryPersistenceProvider:
    return InMemoryPersistenceProvider(clock)


@pytest.fixture
def limiter(provider, clock) -> RateLimiter:
    return RateLimiter(
        {"name": "sms", "period_seconds": 60, "max_calls": 2},
        provider,
        clock,
    )


class TestQualifiers:
    @pytest.mark.asyncio
    async def test_missing_qualifier_uses_default(self, limiter, provider) -> None:
        await limiter.check_and_record()

        assert list(provider.records) == [f"sms_{DEFAULT_QUALIFIER}"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("qualifier", ["", 42])
    async def test_invalid_qualifier_is_rejected(self, limiter, qualifier) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            await limiter.check_and_record(qualifier)

        assert exc_info.value.code == "qualifier_invalid"

    @pytest.mark.asyncio
    async def test_check_only_uses_default_qualifier(self, limiter) -> None:
        await limiter.check_and_record()
        await limiter.check_and_record()

        assert await limiter.check_only() is True
        assert await limiter.check_only("someone-else") is False


class TestRejectIfExceeded:
    @pytest.mark.asyncio
    async def test_passes_while_under_quota(self, limiter, provider) -> None:
        await limiter.reject_if_exceeded("user-1")
        await limiter.reject_if_exceeded("user-1")

        assert len(provider.records["sms_user-1"].usages) == 2

    @pytest.mark.asyncio
    async def test_raises_quota_exceeded_with_details(self, limiter) -> None:
        await limiter.reject_if_exceeded("user-1")
        await limiter.reject_if_exceeded("user-1")

        with pytest.raises(QuotaExceededAppError) as exc_info:
            await limiter.reject_if_exceeded("user-1")

        error = exc_info.value
        assert error.code == "quota_exceeded"
        assert error.details == {
            "limit": 2,
            "period_seconds": 60,
            "qualifier": "user-1",
            "namespace": "sms",
        }
        assert "Limit of 2 calls per 60 seconds" in error.message

    @pytest.mark.asyncio
    async def test_error_factory_only_called_when_exceeded(self, limiter) -> None:
        calls: list[tuple] = []

        def factory(configuration, qualifier):
            calls.append((configuration.name, qualifier))
            return RejectedError(qualifier)

        await limiter.reject_if_exceeded("user-2", error_factory=factory)
        await limiter.reject_if_exceeded("user-2", error_factory=factory)
        assert calls == []

        with pytest.raises(RejectedError):
            await limiter.reject_if_exceeded("user-2", error_factory=factory)

        assert calls == [("sms", "user-2")]


class TestConstruction:
    def test_invalid_configuration_fails_fast(self, provider) -> None:
        with pytest.raises(ConfigurationAppError):
            RateLimiter({"max_calls": 0}, provider)

    def test_configuration_is_resolved_with_defaults(self, provider) -> None:
        limiter = RateLimiter({"name": "custom"}, provider)

        assert limiter.configuration.name == "custom"
        assert limiter.configuration.max_calls == 1

    @pytest.mark.asyncio
    async def test_in_memory_constructor(self, clock) -> None:
        limiter = RateLimiter.in_memory({"max_calls": 1}, clock)

        assert await limiter.check_and_record("q") is False
        assert await limiter.check_and_record("q") is True

    def test_from_settings_uses_configured_backend(self) -> None:
        limiter_settings = LimiterSettings(name="api", max_calls=4, backend="memory")

        with patch(
            "quota_limiter.limiter.facade.create_persistence_provider",
            return_value=InMemoryPersistenceProvider(),
        ) as factory:
            limiter = RateLimiter.from_settings(limiter_settings)

        factory.assert_called_once_with(limiter_settings)
        assert limiter.configuration.name == "api"
        assert limiter.configuration.max_calls == 4
