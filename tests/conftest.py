from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from terminal_tasks.store import TaskStore


class FakeClock:
    """Deterministic clock: each call advances by ``step``."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 8, 30, 0, 250000, tzinfo=timezone.utc))


@pytest.fixture()
def tasks_path(tmp_path: Path) -> Path:
    return tmp_path / "tasks.json"


@pytest.fixture()
def store(tasks_path: Path, clock: FakeClock) -> TaskStore:
    s = TaskStore(tasks_path, clock=clock)
    s.initialize()
    return s
