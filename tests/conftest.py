"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before settings are imported so that no local .env
file leaks into the test run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("LIMITER_BACKEND", "memory")
os.environ.setdefault("LIMITER_NAME", "test_limiter")
os.environ.setdefault("LIMITER_PERIOD_SECONDS", "60")
os.environ.setdefault("LIMITER_MAX_CALLS", "3")

import pytest

from quota_limiter.adapters.timestamp.base import AbstractTimestampProvider


class FakeTimestampProvider(AbstractTimestampProvider):
    """Deterministic clock used to move limiter windows by hand."""

    def __init__(self, start: int = 1_000) -> None:
        self.current = start

    def now_seconds(self) -> int:
        return self.current

    def set(self, seconds: int) -> None:
        self.current = seconds

    def advance(self, seconds: int) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeTimestampProvider:
    return FakeTimestampProvider()
