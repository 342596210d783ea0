"""Transient notification delivery for reelcast.

The playback core hands a Notice to the NotificationManager and moves on.
Each transport is a send_fn(notice) callable. A failing transport is logged,
never raised back into playback. Network transports run off the caller's
thread.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from reelcast.server.events import EventBus

logger = logging.getLogger(__name__)


class Severity:
    """Notice severities, as the shell styles them."""
    INFO = "info"
    WARNING = "warning"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notice:
    """A transient message for the shell to show as a toast."""

    title: str
    description: str
    severity: str = Severity.INFO
    duration_ms: int = 3000

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "duration_ms": self.duration_ms,
        }


SendFn = Callable[[Notice], None]


class NotificationManager:
    """Fans notices out to every registered transport.

    Inline transports (the event bus) run on the caller's thread. Transports
    added with background=True (network sinks such as ntfy) are handed to a
    daemon worker thread, so an unreachable server never stalls playback.

    Args:
        send_fns: Inline callables taking a Notice. More can be added later
                  with add_transport().
    """

    def __init__(self, send_fns: list[SendFn] | None = None, max_pending: int = 100):
        self._send_fns: list[SendFn] = list(send_fns or [])
        self._background_fns: list[SendFn] = []
        self._pending: queue.Queue = queue.Queue(maxsize=max_pending)
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def add_transport(self, send_fn: SendFn, background: bool = False):
        with self._lock:
            if background:
                self._background_fns.append(send_fn)
                self._start_worker()
            else:
                self._send_fns.append(send_fn)

    @property
    def transport_count(self) -> int:
        with self._lock:
            return len(self._send_fns) + len(self._background_fns)

    def send(self, notice: Notice):
        """Deliver a notice to all transports."""
        with self._lock:
            inline = list(self._send_fns)
            background = list(self._background_fns)
        if not inline and not background:
            logger.debug("Notice (no transports): %s", notice.title)
            return
        for send_fn in inline:
            self._deliver(send_fn, notice)
        for send_fn in background:
            try:
                self._pending.put_nowait((send_fn, notice))
            except queue.Full:
                logger.warning("Notice queue full, dropping %r", notice.title)

    def stop(self, timeout: float = 2.0):
        """Stop the background worker after it drains queued notices."""
        with self._lock:
            thread, self._thread = self._thread, None
        if thread is None:
            return
        try:
            self._pending.put(None, timeout=timeout)
        except queue.Full:
            logger.warning("Notice worker busy, not waiting for it")
            return
        thread.join(timeout=timeout)

    def _start_worker(self):
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="notice-sender",
        )
        self._thread.start()

    def _worker_loop(self):
        while True:
            item = self._pending.get()
            if item is None:
                return
            send_fn, notice = item
            self._deliver(send_fn, notice)

    @staticmethod
    def _deliver(send_fn: SendFn, notice: Notice):
        try:
            send_fn(notice)
        except Exception as e:
            logger.warning("Failed to deliver notice %r: %s", notice.title, e)


def create_bus_send_fn(event_bus: "EventBus", session_id: str | None = None) -> SendFn:
    """Create a send_fn that publishes notices as "toast" events on the bus."""

    def send_fn(notice: Notice):
        event_bus.emit("toast", notice.title, json.dumps(notice.to_dict()), session_id)

    return send_fn
