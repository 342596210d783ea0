"""Rendering surfaces driven by the playback orchestrator.

A surface renders one strategy at a time. The orchestrator attaches a fresh
surface per attempt and detaches it before arming the next one; surface events
(canplay, error, load, ...) come back through PlaybackOrchestrator.dispatch()
tagged with the attempt number the surface was attached for.

attach() and detach() run under the orchestrator lock, so a surface that has to
talk to the outside world queues that work and hands it over through drain().
"""

import json
import logging
from functools import partial

from reelcast.server.sources.base import RenderMode, Strategy

logger = logging.getLogger(__name__)


class RenderingSurface:
    """Base class for something that can render a candidate address."""

    mode: RenderMode = RenderMode.NATIVE

    def __init__(self):
        self.address: str | None = None
        self.attempt: int | None = None
        self.attached = False

    def attach(self, strategy: Strategy, attempt: int = 0):
        """Start rendering a strategy."""
        self.address = strategy.address
        self.attempt = attempt
        self.attached = True
        self.load(strategy.address)

    def load(self, address: str):
        """Begin loading an address. Results arrive as events."""

    def detach(self):
        """Stop rendering. Safe to call more than once."""
        self.attached = False

    def drain(self) -> list:
        """Return and clear work queued by attach/detach, as zero-arg callables."""
        return []


class MediaElement(RenderingSurface):
    """Native media element (load/play/pause/current_time/duration).

    Emits loadstart, canplay, waiting, error, loadedmetadata, timeupdate,
    play and pause.
    """

    mode = RenderMode.NATIVE

    def __init__(self):
        super().__init__()
        self.current_time: float = 0
        self.duration: float = 0
        self.paused = True

    def load(self, address: str):
        self.current_time = 0
        self.duration = 0
        self.paused = True
        logger.debug("Media element loading %s", address)

    def play(self) -> bool:
        if not self.attached:
            return False
        self.paused = False
        return True

    def pause(self) -> bool:
        if not self.attached:
            return False
        self.paused = True
        return True

    def detach(self):
        if self.attached:
            self.paused = True
        super().detach()


class EmbeddedFrame(RenderingSurface):
    """Embedded frame. Only a load signal is reliable; most frames
    never report a failure.
    """

    mode = RenderMode.FRAME

    def load(self, address: str):
        logger.debug("Frame loading %s", address)


def local_surface(mode: RenderMode, session_id: str) -> RenderingSurface:
    """Default surface factory: in-process element or frame."""
    if mode == RenderMode.FRAME:
        return EmbeddedFrame()
    return MediaElement()


class BusSurface(RenderingSurface):
    """Surface rendered by a remote shell.

    attach() queues a "render" directive for the event bus and detach() a
    "teardown". The orchestrator publishes them once it releases its lock.
    The shell reports element events back over the HTTP API, echoing the
    attempt number from the render directive.
    """

    def __init__(self, event_bus, session_id: str, mode: RenderMode):
        super().__init__()
        self._event_bus = event_bus
        self._session_id = session_id
        self.mode = mode
        self._pending: list = []

    def load(self, address: str):
        detail = json.dumps({"address": address, "mode": self.mode.value, "attempt": self.attempt})
        self._queue("render", f"Render {self.mode.value}", detail)

    def detach(self):
        if self.attached:
            self._queue("teardown", "Teardown", json.dumps({"attempt": self.attempt}))
        super().detach()

    def drain(self) -> list:
        pending, self._pending = self._pending, []
        return pending

    def _queue(self, event_type: str, title: str, detail: str):
        self._pending.append(partial(self._event_bus.emit, event_type, title, detail, self._session_id))


def bus_surface_factory(event_bus):
    """Create a surface factory that renders through the event bus."""

    def factory(mode: RenderMode, session_id: str) -> RenderingSurface:
        return BusSurface(event_bus, session_id, mode)

    return factory
