"""
Shared fixtures for AIRWATCH tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock injected instead of sleeping."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    """Fake clock starting at 2026-01-01 12:00:00 UTC."""
    return FakeClock()
