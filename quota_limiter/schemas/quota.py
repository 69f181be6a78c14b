from pydantic import BaseModel, Field


class QuotaStatusResponse(BaseModel):
    """Quota state of one qualifier, as seen by a read-only check."""

    qualifier: str = Field(..., description="Rate-limited subject")
    namespace: str = Field(..., description="Limiter name the qualifier belongs to")
    limit: int = Field(..., description="Calls allowed per window")
    period_seconds: int = Field(..., description="Sliding window width in seconds")
    exceeded: bool = Field(..., description="Whether the next call would be rejected")


class QuotaDecisionResponse(QuotaStatusResponse):
    """Outcome of a check that records the call when it is admitted."""

    recorded: bool = Field(..., description="Whether the call was recorded as a usage")
