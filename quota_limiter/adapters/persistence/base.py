"""Persistence provider interfaces.

The limiter core depends on this abstraction (not a concrete backend) so the
storage can be swapped (in-memory, Redis, ...) without touching the sliding
window algorithm.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quota_limiter.core.errors import PersistenceAppError


class PersistenceRecord(BaseModel):
    """Usage record stored for one (namespace, qualifier) pair.

    The wire shape is ``{"u": [...], "expireAt": ...}``; the short ``u`` key
    keeps stored documents small.

    Attributes:
        usages: Timestamps (whole seconds) of past accepted calls.
        expire_at: Advisory timestamp after which the backend may drop the
            record. Not used for correctness.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    usages: list[int] = Field(default_factory=list, alias="u")
    expire_at: int | None = Field(None, alias="expireAt")

    @classmethod
    def empty(cls) -> "PersistenceRecord":
        return cls(usages=[], expire_at=None)

    @classmethod
    def from_stored(cls, data: Any) -> "PersistenceRecord":
        """Validate a raw stored value and build a record from it.

        Raises:
            PersistenceAppError: If the stored value is not a record.
        """
        if not isinstance(data, dict) or not isinstance(data.get("u"), list):
            raise PersistenceAppError(
                code="record_invalid",
                message="Stored usage record is malformed",
                details={"hint": "expected an object with a 'u' list"},
            )
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise PersistenceAppError(
                code="record_invalid",
                message="Stored usage record is malformed",
                details={"hint": str(exc)},
            ) from exc

    def to_stored(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


RecordUpdater = Callable[[PersistenceRecord], PersistenceRecord]


class AbstractPersistenceProvider(ABC):
    """Interface for usage record storage."""

    @abstractmethod
    async def update_and_get(
        self,
        namespace: str,
        key: str,
        updater: RecordUpdater,
    ) -> PersistenceRecord:
        """Atomically read, update and persist the record for a key.

        The read-update-write sequence must be linearizable with respect to
        other ``update_and_get`` calls on the same (namespace, key). Calls on
        different keys carry no ordering requirement.

        Args:
            namespace: Limiter name grouping the records.
            key: Qualifier identifying the rate-limited subject.
            updater: Pure function mapping the current record (empty if none
                exists) to the record to persist. May be called more than once
                when the backend retries.

        Returns:
            The committed record.

        Raises:
            PersistenceAppError: If the update cannot be committed within the
                backend's retry budget.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, namespace: str, key: str) -> PersistenceRecord:
        """Return a best-effort snapshot of the record for a key.

        Returns the empty record when nothing is stored.
        """
        raise NotImplementedError
