from __future__ import annotations

from fastapi import APIRouter, Depends

from quota_limiter.core.rate_limit import enforce_rate_limit

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/limited", dependencies=[Depends(enforce_rate_limit)])
def limited_health_check() -> dict:
    """Health check guarded by the per-caller rate limit.

    Lets operators verify that throttling is active end to end.
    """

    return {"status": "ok"}
