from __future__ import annotations

import time
from typing import Callable

from quota_limiter.adapters.timestamp.base import AbstractTimestampProvider


class SystemTimestampProvider(AbstractTimestampProvider):
    """Timestamp provider backed by the host clock.

    Args:
        clock: Time source function returning UNIX time in seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def now_seconds(self) -> int:
        return int(self._clock())
