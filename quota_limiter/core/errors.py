"""Application-level exception types.

This module defines domain errors used across the limiter, its persistence
adapters and the HTTP host, enabling consistent error handling, logging, and
API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error kind only carries what it knows.
    """

    code: str
    message: str
    hint: str
    field: str
    limit: int
    period_seconds: int
    qualifier: str
    namespace: str
    attempts: int
    backend: str
    retry_after: float
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when caller input (e.g. a qualifier) is invalid."""


class ConfigurationAppError(AppError):
    """Raised when a limiter is constructed with an invalid configuration."""


class PersistenceAppError(AppError):
    """Raised when the persistence backend cannot read or commit a record."""


class QuotaExceededAppError(AppError):
    """Raised by the facade when a qualifier has used up its quota."""
