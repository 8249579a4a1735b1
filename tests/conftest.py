from __future__ import annotations

from datetime import UTC, datetime

import pytest


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def set(self, moment: datetime) -> None:
        self.now = moment.timestamp()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 15, 12, 0, tzinfo=UTC).timestamp())
