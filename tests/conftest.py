"""Shared fixtures: a controllable clock so no test depends on wall time."""

from datetime import datetime, timedelta, timezone

import pytest

from notifier.reminders.task_queue import TaskQueue

NOW = datetime(2025, 2, 17, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue(clock) -> TaskQueue:
    return TaskQueue(clock=clock)
