"""Public rate limiter facade.

Binds a configuration, a persistence provider and a clock into a
``GenericRateLimiter`` and adds the caller-facing conveniences: a default
qualifier for limiting one global resource, and a rejecting variant that turns
an exceeded quota into an error.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from quota_limiter.adapters.persistence.base import AbstractPersistenceProvider
from quota_limiter.adapters.persistence.factory import create_persistence_provider
from quota_limiter.adapters.persistence.in_memory import InMemoryPersistenceProvider
from quota_limiter.adapters.timestamp.base import AbstractTimestampProvider
from quota_limiter.adapters.timestamp.system import SystemTimestampProvider
from quota_limiter.core.config import LimiterSettings
from quota_limiter.core.errors import QuotaExceededAppError, ValidationAppError
from quota_limiter.limiter.configuration import RateLimiterConfiguration
from quota_limiter.limiter.generic import GenericRateLimiter

DEFAULT_QUALIFIER = "default_qualifier"

ErrorFactory = Callable[[RateLimiterConfiguration, str], Exception]


def build_quota_exceeded_error(
    configuration: RateLimiterConfiguration,
    qualifier: str,
) -> QuotaExceededAppError:
    """Default error raised by ``RateLimiter.reject_if_exceeded``."""
    return QuotaExceededAppError(
        code="quota_exceeded",
        message=(
            f"Limit of {configuration.max_calls} calls per {configuration.period_seconds} "
            f"seconds exceeded for qualifier '{qualifier}' in limiter {configuration.name}"
        ),
        details={
            "limit": configuration.max_calls,
            "period_seconds": configuration.period_seconds,
            "qualifier": qualifier,
            "namespace": configuration.name,
        },
    )


class RateLimiter:
    """Sliding-window rate limiter bound to one persistence backend.

    Example:
        >>> limiter = RateLimiter.in_memory({"name": "sms", "period_seconds": 60, "max_calls": 3})
        >>> await limiter.reject_if_exceeded("user-42")
    """

    def __init__(
        self,
        configuration: RateLimiterConfiguration | Mapping[str, Any] | None,
        persistence_provider: AbstractPersistenceProvider,
        timestamp_provider: AbstractTimestampProvider | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            configuration: Full or partial configuration; missing values take
                their defaults.
            persistence_provider: Store holding usage records.
            timestamp_provider: Clock; defaults to the host clock.
            logger: Destination for debug trace events.

        Raises:
            ConfigurationAppError: If the resolved configuration is invalid.
        """
        self._configuration = RateLimiterConfiguration.resolve(configuration)
        self._generic = GenericRateLimiter(
            self._configuration,
            persistence_provider,
            timestamp_provider or SystemTimestampProvider(),
            logger=logger,
        )

    @classmethod
    def in_memory(
        cls,
        configuration: RateLimiterConfiguration | Mapping[str, Any] | None = None,
        timestamp_provider: AbstractTimestampProvider | None = None,
    ) -> "RateLimiter":
        provider = InMemoryPersistenceProvider(timestamp_provider)
        return cls(configuration, provider, timestamp_provider)

    @classmethod
    def from_settings(cls, limiter_settings: LimiterSettings) -> "RateLimiter":
        """Build a limiter and its backend from environment settings."""
        return cls(
            RateLimiterConfiguration.from_settings(limiter_settings),
            create_persistence_provider(limiter_settings),
        )

    @property
    def configuration(self) -> RateLimiterConfiguration:
        return self._configuration

    async def check_and_record(self, qualifier: str | None = None) -> bool:
        """Return True if the quota is exceeded, otherwise record the call."""
        return await self._generic.check_and_record(self._resolve_qualifier(qualifier))

    async def check_only(self, qualifier: str | None = None) -> bool:
        """Return True if the next call would be exceeding. Records nothing."""
        return await self._generic.check_only(self._resolve_qualifier(qualifier))

    async def reject_if_exceeded(
        self,
        qualifier: str | None = None,
        *,
        error_factory: ErrorFactory | None = None,
    ) -> None:
        """Record the call, or raise if the quota is exceeded.

        Args:
            qualifier: Key of the rate-limited subject.
            error_factory: Builds the error to raise; called only on the
                exceeded path with the configuration and qualifier.

        Raises:
            QuotaExceededAppError: When exceeded and no error_factory is given.
        """
        resolved = self._resolve_qualifier(qualifier)
        if await self._generic.check_and_record(resolved):
            factory = error_factory or build_quota_exceeded_error
            raise factory(self._configuration, resolved)

    @staticmethod
    def _resolve_qualifier(qualifier: str | None) -> str:
        if qualifier is None:
            return DEFAULT_QUALIFIER
        if not isinstance(qualifier, str) or not qualifier:
            raise ValidationAppError(
                code="qualifier_invalid",
                message="Qualifier must be a non-empty string",
                details={"field": "qualifier"},
            )
        return qualifier
