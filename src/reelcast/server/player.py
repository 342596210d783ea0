"""Playback orchestrator - one state machine per play request.

A play request opens a session: the URL is classified, the first candidate
address is attached to a rendering surface, and element/frame events drive the
session through its lifecycle:

    idle -> loading -> paused <-> playing
               |
               +-> fallback_pending -> loading (next candidate) -> ...
               |
               +-> terminal_error (no candidates left)

Google Drive's direct address arms a fallback timer; if the element neither
succeeds nor fails in time, the session moves on to the /preview frame.

All state changes happen under one lock. Every asynchronous input (timer
firing, surface event) carries the session handle and the attempt number it
was issued for, and is dropped if the session it targets has been closed,
replaced or has moved on to another attempt. Callbacks to the caller
(progress, session events, notifications) and surface directives run after the
lock is released.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Callable

from reelcast.server import remediation
from reelcast.server.notifications import Notice, Severity
from reelcast.server.progress import format_time, progress_percent
from reelcast.server.sources import (
    ProviderKind,
    RenderMode,
    SourceDescriptor,
    SourceRegistry,
    Strategy,
    default_registry,
)
from reelcast.server.surfaces import RenderingSurface, local_surface

if TYPE_CHECKING:
    from reelcast.config import PlayerConfig
    from reelcast.server.events import EventBus
    from reelcast.server.notifications import NotificationManager

logger = logging.getLogger(__name__)


class PlaybackState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    FALLBACK_PENDING = "fallback_pending"
    PLAYING = "playing"
    PAUSED = "paused"
    TERMINAL_ERROR = "terminal_error"
    CLOSED = "closed"


READY_STATES = frozenset({PlaybackState.PLAYING, PlaybackState.PAUSED})

# Events a surface can report
SUCCESS_EVENTS = frozenset({"canplay", "loadedmetadata", "loadeddata", "load"})
BUFFERING_EVENTS = frozenset({"loadstart", "waiting"})
MEDIA_EVENTS = SUCCESS_EVENTS | BUFFERING_EVENTS | {"error", "timeupdate", "play", "pause"}

# Session event types seen by the caller
NOTICE = "notice"
TERMINAL_ERROR = "terminal-error"


@dataclass(frozen=True)
class SessionHandle:
    """Identifies one opened session. generation is unique per open()."""

    session_id: str
    generation: int


@dataclass
class PlaybackSession:
    """Mutable state of one open player."""

    handle: SessionHandle
    descriptor: SourceDescriptor
    title: str = ""
    state: PlaybackState = PlaybackState.IDLE
    strategy_index: int = 0
    current_time: float = 0
    duration: float = 0
    is_loading: bool = True
    attempt_started_at: float = 0
    last_progress: float | None = None
    remediation: str | None = None
    events: list[dict] = field(default_factory=list)
    on_progress: Callable[[float], None] | None = None
    on_event: Callable[[dict], None] | None = None
    surface: RenderingSurface | None = None
    timer: object | None = None

    @property
    def session_id(self) -> str:
        return self.handle.session_id

    @property
    def strategy(self) -> Strategy:
        return self.descriptor.strategies[self.strategy_index]

    @property
    def has_next_strategy(self) -> bool:
        return self.strategy_index + 1 < len(self.descriptor.candidate_addresses)

    @property
    def is_ready(self) -> bool:
        return self.state in READY_STATES

    def to_dict(self, elapsed: float = 0) -> dict:
        return {
            "session_id": self.session_id,
            "generation": self.handle.generation,
            "title": self.title,
            "kind": self.descriptor.kind.value,
            "provider_id": self.descriptor.provider_id,
            "raw_url": self.descriptor.raw_url,
            "state": self.state.value,
            "is_ready": self.is_ready,
            "is_loading": self.is_loading,
            "strategy_index": self.strategy_index,
            "strategy": self.strategy.to_dict(),
            "strategies_total": len(self.descriptor.candidate_addresses),
            "current_time": self.current_time,
            "duration": self.duration,
            "current_time_display": format_time(self.current_time),
            "duration_display": format_time(self.duration),
            "progress": self.last_progress,
            "elapsed_since_attempt": elapsed,
            "remediation": self.remediation,
            "events": list(self.events),
        }


def _thread_timer(delay: float, callback: Callable[[], None]):
    """Default timer factory: a daemon threading.Timer, already started."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class PlaybackOrchestrator:
    """Opens, drives and closes playback sessions.

    Args:
        registry: Source classifier. Defaults to the built-in handlers.
        config: Timeouts, notification durations and session policy.
        event_bus: Receives notice / terminal-error events, if given.
        notifier: Receives transient Notices, if given.
        surface_factory: Callable(mode, session_id) -> RenderingSurface.
        timer_factory: Callable(delay, callback) -> object with cancel().
        clock: Monotonic clock used for attempt timing.
        on_dismiss: Called with the home path when a session is dismissed.
    """

    def __init__(
        self,
        registry: SourceRegistry | None = None,
        config: "PlayerConfig | None" = None,
        event_bus: "EventBus | None" = None,
        notifier: "NotificationManager | None" = None,
        surface_factory: Callable[[RenderMode, str], RenderingSurface] | None = None,
        timer_factory: Callable | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_dismiss: Callable[[str], None] | None = None,
    ):
        if config is None:
            from reelcast.config import PlayerConfig
            config = PlayerConfig()
        self._registry = registry or default_registry()
        self._config = config
        self.event_bus = event_bus
        self.notifier = notifier
        self._surface_factory = surface_factory or local_surface
        self._timer_factory = timer_factory or _thread_timer
        self._clock = clock
        self._on_dismiss = on_dismiss
        self._lock = threading.RLock()
        self._sessions: dict[str, PlaybackSession] = {}
        self._generation = 0

    # --- Caller API ---

    def open(
        self,
        url: str,
        title: str = "",
        on_progress: Callable[[float], None] | None = None,
        on_event: Callable[[dict], None] | None = None,
    ) -> SessionHandle:
        """Open a session for a URL and start its first strategy (attempt 0)."""
        descriptor = self._registry.classify(url)
        outbox: list[Callable[[], None]] = []
        with self._lock:
            if self._config.exclusive_sessions:
                for session in list(self._sessions.values()):
                    self._close_locked(session.handle, "replaced", outbox)

            self._generation += 1
            handle = SessionHandle(uuid.uuid4().hex, self._generation)
            session = PlaybackSession(
                handle=handle,
                descriptor=descriptor,
                title=title,
                on_progress=on_progress,
                on_event=on_event,
            )
            self._sessions[handle.session_id] = session
            logger.info(
                "Opened session %s: %s (%s, %d candidate(s))",
                handle.session_id, title or url, descriptor.kind.value,
                len(descriptor.candidate_addresses),
            )
            self._start_attempt(session, outbox)
        self._flush(outbox)
        return handle

    def close(self, handle: SessionHandle) -> None:
        """Close a session. Idempotent; safe from any state."""
        outbox: list[Callable[[], None]] = []
        with self._lock:
            self._close_locked(handle, "closed", outbox)
        self._flush(outbox)

    def dismiss(self, handle: SessionHandle) -> str:
        """Close a session after its remediation was shown and navigate home.

        Returns the home path handed to the dismissal callback.
        """
        home = self._config.home_path
        outbox: list[Callable[[], None]] = []
        with self._lock:
            self._close_locked(handle, "dismissed", outbox)
        self._flush(outbox)
        if self._on_dismiss:
            self._on_dismiss(home)
        return home

    def close_all(self):
        outbox: list[Callable[[], None]] = []
        with self._lock:
            for session in list(self._sessions.values()):
                self._close_locked(session.handle, "shutdown", outbox)
        self._flush(outbox)

    def dispatch(
        self,
        handle: SessionHandle,
        event: str,
        attempt: int,
        *,
        current_time: float | None = None,
        duration: float | None = None,
    ) -> bool:
        """Feed a surface event into a session.

        attempt is the strategy index the reporting surface was attached for;
        surfaces receive it on attach() and echo it back with every event.

        Returns True if the event was applied, False if it was dropped
        (closed or replaced session, stale attempt, terminal session, or an
        event with no effect in the current state).
        """
        if event not in MEDIA_EVENTS:
            raise ValueError(f"Unknown playback event: {event!r}")

        outbox: list[Callable[[], None]] = []
        with self._lock:
            session = self._live(handle)
            if session is None:
                logger.debug("Dropping %s for closed session %s", event, handle.session_id)
                return False
            if attempt != session.strategy_index:
                logger.debug(
                    "Dropping %s from stale attempt %s (session %s is on %d)",
                    event, attempt, session.session_id, session.strategy_index,
                )
                return False
            if session.state == PlaybackState.TERMINAL_ERROR:
                return False
            applied = self._apply(session, event, current_time, duration, outbox)
        self._flush(outbox)
        return applied

    # --- Observation ---

    def get(self, handle: SessionHandle) -> PlaybackSession | None:
        with self._lock:
            return self._live(handle)

    def find(self, session_id: str) -> SessionHandle | None:
        """Look up the handle of a live session by id."""
        with self._lock:
            session = self._sessions.get(session_id)
            return session.handle if session else None

    def elapsed_since_attempt(self, handle: SessionHandle) -> float:
        with self._lock:
            session = self._live(handle)
            if session is None:
                return 0
            return max(0.0, self._clock() - session.attempt_started_at)

    def snapshot(self, handle: SessionHandle) -> dict | None:
        with self._lock:
            session = self._live(handle)
            if session is None:
                return None
            return session.to_dict(self._clock() - session.attempt_started_at)

    def sessions(self) -> list[dict]:
        with self._lock:
            now = self._clock()
            return [s.to_dict(now - s.attempt_started_at) for s in self._sessions.values()]

    # --- Internals (lock held) ---

    def _live(self, handle: SessionHandle) -> PlaybackSession | None:
        session = self._sessions.get(handle.session_id)
        if session is None or session.handle.generation != handle.generation:
            return None
        return session

    def _start_attempt(self, session: PlaybackSession, outbox):
        strategy = session.strategy
        session.state = PlaybackState.LOADING
        session.is_loading = True
        session.current_time = 0
        session.duration = 0
        session.last_progress = None
        session.attempt_started_at = self._clock()

        surface = self._surface_factory(strategy.mode, session.session_id)
        session.surface = surface
        surface.attach(strategy, session.strategy_index)
        outbox.extend(surface.drain())
        logger.debug(
            "Session %s attempt %d: %s via %s",
            session.session_id, session.strategy_index, strategy.address, strategy.mode.value,
        )

        delay = self._timeout_for(session)
        if delay:
            session.timer = self._timer_factory(
                delay, partial(self._on_timeout, session.handle, session.strategy_index)
            )

    def _timeout_for(self, session: PlaybackSession) -> float | None:
        if (
            session.descriptor.kind == ProviderKind.GOOGLE_DRIVE
            and session.strategy_index == 0
            and session.has_next_strategy
        ):
            return self._config.fallback_timeout or None
        if self._config.stall_timeout > 0 and session.strategy.mode == RenderMode.NATIVE:
            return self._config.stall_timeout
        return None

    def _on_timeout(self, handle: SessionHandle, attempt: int):
        outbox: list[Callable[[], None]] = []
        with self._lock:
            session = self._live(handle)
            if session is None:
                logger.debug("Ignoring timeout for closed session %s", handle.session_id)
                return
            if attempt != session.strategy_index or session.state != PlaybackState.LOADING:
                logger.debug("Ignoring stale timeout for session %s", handle.session_id)
                return
            session.timer = None
            logger.warning(
                "Session %s attempt %d timed out after %.1fs",
                session.session_id, attempt, self._clock() - session.attempt_started_at,
            )
            self._fail(session, True, outbox)
        self._flush(outbox)

    def _apply(self, session, event, current_time, duration, outbox) -> bool:
        if duration is not None:
            self._record_duration(session, duration)

        if event in BUFFERING_EVENTS:
            session.is_loading = True
            return True

        if event in SUCCESS_EVENTS:
            self._mark_ready(session)
            return True

        if event in ("play", "pause"):
            if not session.is_ready:
                return False
            session.state = PlaybackState.PLAYING if event == "play" else PlaybackState.PAUSED
            return True

        if event == "timeupdate":
            if current_time is not None:
                session.current_time = float(current_time)
            self._report_progress(session, outbox)
            return True

        # error
        self._fail(session, False, outbox)
        return True

    @staticmethod
    def _record_duration(session: PlaybackSession, duration):
        try:
            value = float(duration)
        except (TypeError, ValueError):
            return
        if value > 0 and value != float("inf"):
            session.duration = value

    def _mark_ready(self, session: PlaybackSession):
        self._cancel_timer(session)
        session.is_loading = False
        if session.state == PlaybackState.LOADING:
            session.state = PlaybackState.PAUSED
            logger.info(
                "Session %s ready on attempt %d after %.1fs",
                session.session_id, session.strategy_index,
                self._clock() - session.attempt_started_at,
            )

    def _report_progress(self, session: PlaybackSession, outbox):
        percent = progress_percent(session.current_time, session.duration)
        if percent is None:
            return
        session.last_progress = percent
        if session.on_progress:
            outbox.append(partial(session.on_progress, percent))

    def _fail(self, session: PlaybackSession, timed_out: bool, outbox):
        self._cancel_timer(session)
        self._detach_surface(session, outbox)
        failed = session.strategy_index

        if session.has_next_strategy:
            session.state = PlaybackState.FALLBACK_PENDING
            session.strategy_index += 1
            message = remediation.fallback_message(session.strategy.mode, timed_out)
            logger.warning(
                "Session %s attempt %d %s, falling back to %s",
                session.session_id, failed, "timed out" if timed_out else "failed",
                session.strategy.mode.value,
            )
            notice = Notice(
                remediation.FALLBACK_TITLE, message,
                Severity.INFO, self._config.notice_duration_ms,
            )
            self._publish(session, NOTICE, message, notice, outbox)
            self._start_attempt(session, outbox)
            return

        session.state = PlaybackState.TERMINAL_ERROR
        session.is_loading = False
        message = remediation.remediation_message(session.descriptor)
        session.remediation = message
        logger.warning(
            "Session %s: all %d strategies failed (%s)",
            session.session_id, len(session.descriptor.candidate_addresses),
            session.descriptor.raw_url,
        )
        notice = Notice(
            remediation.remediation_title(session.descriptor), message,
            Severity.DESTRUCTIVE, self._terminal_duration_ms(session.descriptor),
        )
        self._publish(session, TERMINAL_ERROR, message, notice, outbox)

    def _publish(self, session: PlaybackSession, event_type: str, message: str, notice: Notice, outbox):
        event = {"type": event_type, "message": message}
        session.events.append(event)
        if session.on_event:
            outbox.append(partial(session.on_event, dict(event)))
        if self.event_bus:
            outbox.append(partial(self.event_bus.emit, event_type, notice.title, message, session.session_id))
        if self.notifier:
            outbox.append(partial(self.notifier.send, notice))

    @staticmethod
    def _cancel_timer(session: PlaybackSession):
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None

    def _terminal_duration_ms(self, descriptor: SourceDescriptor) -> int:
        if descriptor.kind == ProviderKind.GOOGLE_DRIVE:
            return self._config.drive_error_duration_ms
        return self._config.error_duration_ms

    @staticmethod
    def _detach_surface(session: PlaybackSession, outbox):
        if session.surface is not None:
            session.surface.detach()
            outbox.extend(session.surface.drain())
            session.surface = None

    def _close_locked(self, handle: SessionHandle, reason: str, outbox) -> bool:
        session = self._live(handle)
        if session is None:
            return False
        del self._sessions[handle.session_id]
        self._cancel_timer(session)
        self._detach_surface(session, outbox)
        session.state = PlaybackState.CLOSED
        session.is_loading = False
        logger.info("Session %s %s", session.session_id, reason)
        return True

    @staticmethod
    def _flush(outbox: list[Callable[[], None]]):
        for deliver in outbox:
            try:
                deliver()
            except Exception:
                logger.exception("Playback callback failed")
