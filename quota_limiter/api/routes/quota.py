from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from quota_limiter.core.rate_limit import get_rate_limiter
from quota_limiter.limiter.facade import RateLimiter
from quota_limiter.schemas.quota import QuotaDecisionResponse, QuotaStatusResponse

router = APIRouter(tags=["Quota"])

LimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]


def _status_fields(limiter: RateLimiter, qualifier: str) -> dict:
    configuration = limiter.configuration
    return {
        "qualifier": qualifier,
        "namespace": configuration.name,
        "limit": configuration.max_calls,
        "period_seconds": configuration.period_seconds,
    }


@router.get("/quota/{qualifier}", response_model=QuotaStatusResponse)
async def get_quota_status(qualifier: str, limiter: LimiterDep) -> QuotaStatusResponse:
    """Report whether the qualifier's next call would be rejected.

    Read-only: probing the quota is never counted as a usage.
    """
    exceeded = await limiter.check_only(qualifier)
    return QuotaStatusResponse(**_status_fields(limiter, qualifier), exceeded=exceeded)


@router.post("/quota/{qualifier}/usages", response_model=QuotaDecisionResponse)
async def record_usage(qualifier: str, limiter: LimiterDep) -> QuotaDecisionResponse:
    """Check the quota and record the call if it is admitted.

    Always answers 200; ``exceeded`` tells the caller whether it was admitted.
    """
    exceeded = await limiter.check_and_record(qualifier)
    return QuotaDecisionResponse(
        **_status_fields(limiter, qualifier),
        exceeded=exceeded,
        recorded=not exceeded,
    )


@router.post("/quota/{qualifier}/consume", response_model=QuotaDecisionResponse)
async def consume_quota(qualifier: str, limiter: LimiterDep) -> QuotaDecisionResponse:
    """Record the call or fail with 429 when the quota is exceeded.

    Raises:
        QuotaExceededAppError: Rendered as HTTP 429 by the exception handlers.
    """
    await limiter.reject_if_exceeded(qualifier)
    return QuotaDecisionResponse(
        **_status_fields(limiter, qualifier),
        exceeded=False,
        recorded=True,
    )
