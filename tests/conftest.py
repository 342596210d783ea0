"""Shared test fixtures for the reelcast test suite."""

import pytest

from reelcast.config import PlayerConfig, ServerConfig
from reelcast.server.app import create_app
from reelcast.server.database import Database
from reelcast.server.events import EventBus
from reelcast.server.player import PlaybackOrchestrator
from reelcast.server.surfaces import local_surface


class ManualTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Fires even if cancelled, like a threading.Timer that already
        # started running when cancel() was called.
        self.callback()


class ManualTimers:
    """Timer factory recording every timer it creates."""

    def __init__(self):
        self.created: list[ManualTimer] = []

    def __call__(self, delay, callback):
        timer = ManualTimer(delay, callback)
        self.created.append(timer)
        return timer

    @property
    def last(self) -> ManualTimer:
        return self.created[-1]

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.created if not t.cancelled]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSurfaces:
    """Surface factory that keeps every surface it hands out."""

    def __init__(self):
        self.created = []

    def __call__(self, mode, session_id):
        surface = local_surface(mode, session_id)
        self.created.append(surface)
        return surface


@pytest.fixture
def db(tmp_path):
    """Create a fresh test database."""
    return Database(str(tmp_path / "test.db"))


@pytest.fixture
def event_bus(db):
    """Create an EventBus instance backed by the test database."""
    return EventBus(db)


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def surfaces():
    return RecordingSurfaces()


@pytest.fixture
def orchestrator(timers, clock, surfaces):
    """Orchestrator with manual timers, a fake clock and in-process surfaces."""
    orch = PlaybackOrchestrator(
        config=PlayerConfig(),
        timer_factory=timers,
        clock=clock,
        surface_factory=surfaces,
    )
    yield orch
    orch.close_all()


@pytest.fixture
def app(tmp_path):
    """Create a Flask test app."""
    config = ServerConfig(
        data_dir=str(tmp_path / "data"),
        db_file=str(tmp_path / "test.db"),
    )
    app = create_app(config)
    app.config["TESTING"] = True
    yield app
    app.orchestrator.close_all()


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
