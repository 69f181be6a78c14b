from quota_limiter.adapters.timestamp.base import AbstractTimestampProvider
from quota_limiter.adapters.timestamp.system import SystemTimestampProvider

__all__ = ["AbstractTimestampProvider", "SystemTimestampProvider"]
