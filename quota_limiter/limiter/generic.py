"""Sliding-window rate limiter core.

For every call the limiter looks at the usages recorded for a qualifier within
the trailing ``period_seconds`` (the half-open window ``(now - period, now]``).
If ``max_calls`` or more are present the call is exceeding; otherwise ``now``
is recorded. Decayed usages are dropped on every update, so stored records stay
bounded by ``max_calls``.

The limiter holds no state of its own: every decision is computed inside the
persistence provider's atomic update, which serializes concurrent callers on
the same qualifier. A single instance is safe to share across tasks.
"""

from __future__ import annotations

import logging
from typing import Iterable

from quota_limiter.adapters.persistence.base import AbstractPersistenceProvider, PersistenceRecord
from quota_limiter.adapters.timestamp.base import AbstractTimestampProvider
from quota_limiter.limiter.configuration import RateLimiterConfiguration


class GenericRateLimiter:
    """Backend-agnostic sliding-window limiter.

    Args:
        configuration: Resolved limiter configuration.
        persistence_provider: Store holding usage records.
        timestamp_provider: Clock the windows are measured against.
        logger: Destination for debug trace events. Defaults to this module's
            logger. Events are only emitted when ``configuration.debug`` is set.
    """

    def __init__(
        self,
        configuration: RateLimiterConfiguration,
        persistence_provider: AbstractPersistenceProvider,
        timestamp_provider: AbstractTimestampProvider,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._configuration = RateLimiterConfiguration.resolve(configuration)
        self._persistence_provider = persistence_provider
        self._timestamp_provider = timestamp_provider
        self._logger = logger or logging.getLogger(__name__)

    @property
    def configuration(self) -> RateLimiterConfiguration:
        return self._configuration

    async def check_and_record(self, qualifier: str) -> bool:
        """Decide whether a call is exceeding and record it if it is not.

        The decision and the write happen within one atomic update, so
        concurrent calls for the same qualifier can never admit more than
        ``max_calls`` usages per window.

        Args:
            qualifier: Key of the rate-limited subject.

        Returns:
            True when the quota is exceeded (nothing recorded), False when the
            call was admitted and recorded.

        Raises:
            PersistenceAppError: If the backend cannot commit the update.
        """
        now, threshold = self._window_bounds()
        decision: dict[str, bool] = {}

        def updater(record: PersistenceRecord) -> PersistenceRecord:
            recent = self._select_recent_usages(record.usages, threshold)
            exceeded = self._is_exceeded(len(recent))
            if not exceeded:
                recent.append(now)
            # Backends may retry the updater; only the committed run counts.
            decision["exceeded"] = exceeded
            return self._build_record(recent)

        record = await self._persistence_provider.update_and_get(
            self._configuration.name,
            qualifier,
            updater,
        )

        exceeded = decision["exceeded"]
        self._trace(
            "rate_limiter.decision",
            now=now,
            threshold=threshold,
            exceeded=exceeded,
            usage_count=len(record.usages),
        )
        return exceeded

    async def check_only(self, qualifier: str) -> bool:
        """Report whether the next call would be exceeding, without recording.

        Reads a snapshot of the record and never writes, so the answer may be
        stale by the time the caller acts on it.
        """
        now, threshold = self._window_bounds()
        record = await self._persistence_provider.get(self._configuration.name, qualifier)
        recent = self._select_recent_usages(record.usages, threshold)
        exceeded = self._is_exceeded(len(recent))

        self._trace(
            "rate_limiter.check_only",
            now=now,
            threshold=threshold,
            exceeded=exceeded,
            usage_count=len(recent),
        )
        return exceeded

    def _window_bounds(self) -> tuple[int, int]:
        now = self._timestamp_provider.now_seconds()
        return now, now - self._configuration.period_seconds

    @staticmethod
    def _select_recent_usages(usages: Iterable[int], threshold: int) -> list[int]:
        return [usage for usage in usages if usage > threshold]

    def _is_exceeded(self, recent_count: int) -> bool:
        return recent_count >= self._configuration.max_calls

    def _build_record(self, usages: list[int]) -> PersistenceRecord:
        # Once the newest usage leaves the window the record holds nothing useful.
        expire_at = max(usages) + self._configuration.period_seconds if usages else None
        return PersistenceRecord(usages=usages, expire_at=expire_at)

    def _trace(self, event: str, **fields: object) -> None:
        if not self._configuration.debug:
            return
        self._logger.info(
            event,
            extra={"limiter": self._configuration.name, **fields},
        )
