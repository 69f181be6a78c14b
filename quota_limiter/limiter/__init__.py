"""Sliding-window rate limiting.

``RateLimiter`` is the entry point for host code; ``GenericRateLimiter`` holds
the windowing algorithm and is usable directly with any persistence provider.
"""

from quota_limiter.limiter.configuration import RateLimiterConfiguration
from quota_limiter.limiter.facade import (
    DEFAULT_QUALIFIER,
    ErrorFactory,
    RateLimiter,
    build_quota_exceeded_error,
)
from quota_limiter.limiter.generic import GenericRateLimiter

__all__ = [
    "DEFAULT_QUALIFIER",
    "ErrorFactory",
    "GenericRateLimiter",
    "RateLimiter",
    "RateLimiterConfiguration",
    "build_quota_exceeded_error",
]
