"""
Shared fixtures for the companion test suite.

Run with:
    python -m pytest tests -v
"""

import random
from datetime import datetime

import pytest


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def local_timestamp(hour: int) -> float:
    return datetime(2024, 3, 4, hour, 0, 0).timestamp()


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def afternoon_clock():
    """Clock pinned to 14:00 local time, so no hour-gated utterance applies."""
    return FakeClock(local_timestamp(14))


@pytest.fixture
def morning_clock():
    return FakeClock(local_timestamp(8))


@pytest.fixture
def rng():
    return random.Random(1234)
