"""Rate limiter configuration model.

A configuration is resolved once (defaults first, then caller overrides),
validated, and frozen for the lifetime of the limiter that owns it.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, ValidationError

from quota_limiter.core.config import LimiterSettings
from quota_limiter.core.errors import ConfigurationAppError


class RateLimiterConfiguration(BaseModel):
    """Validated, immutable limiter configuration.

    Attributes:
        name: Namespace grouping all qualifiers of this limiter.
        period_seconds: Sliding window width in seconds.
        max_calls: Number of recent usages at which the next call is exceeding.
        debug: Emit per-decision trace events.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: StrictStr = Field("rate_limiter_1", min_length=1)
    period_seconds: StrictInt = Field(5 * 60, gt=0)
    max_calls: StrictInt = Field(1, gt=0)
    debug: StrictBool = False

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "configuration"
            raise ConfigurationAppError(
                code="configuration_invalid",
                message=f"Invalid rate limiter configuration: {field}: {first['msg']}",
                details={"field": field, "hint": first["msg"]},
            ) from exc

    @classmethod
    def resolve(
        cls,
        overrides: "RateLimiterConfiguration | Mapping[str, Any] | None" = None,
    ) -> "RateLimiterConfiguration":
        """Apply defaults to a partial configuration and validate it.

        Keys set to None fall back to their defaults.

        Raises:
            ConfigurationAppError: If any resolved value is invalid.
        """
        if isinstance(overrides, cls):
            return overrides
        if overrides is None:
            return cls()
        if not isinstance(overrides, Mapping):
            raise ConfigurationAppError(
                code="configuration_invalid",
                message="Rate limiter configuration must be a mapping",
            )
        return cls(**{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_settings(cls, limiter_settings: LimiterSettings) -> "RateLimiterConfiguration":
        return cls(
            name=limiter_settings.name,
            period_seconds=limiter_settings.period_seconds,
            max_calls=limiter_settings.max_calls,
            debug=limiter_settings.debug,
        )
