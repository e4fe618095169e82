"""Shared fixtures for subathon tests."""

from __future__ import annotations

import pytest

from subathon.core.config import TimerConfig
from subathon.core.engine import TimerEngine
from subathon.core.events import Actor
from subathon.core.handlers import EventHandlers
from subathon.core.persistence import InMemoryTimerStateStore


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Runtime and HTTP surface tests")


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    def __init__(self) -> None:
        self.frames: list[str] = []
        self.feedback: list[tuple[str, float]] = []

    def render(self, text: str) -> None:
        self.frames.append(text)

    def show_feedback(self, text: str, timeout: float) -> None:
        self.feedback.append((text, timeout))

    async def flush(self) -> None:
        return None


VIEWER = Actor(display_name="viewer")
MODERATOR = Actor(display_name="mod", is_moderator=True)
BROADCASTER = Actor(display_name="streamer", is_broadcaster=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryTimerStateStore:
    return InMemoryTimerStateStore()


@pytest.fixture
def make_engine(clock):
    def factory(**options) -> TimerEngine:
        return TimerEngine(TimerConfig(**options), clock=clock)

    return factory


@pytest.fixture
def make_handlers(make_engine):
    def factory(**options) -> EventHandlers:
        return EventHandlers(make_engine(**options))

    return factory
