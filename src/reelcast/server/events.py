"""Event bus for real-time push to player shells.

Notices, terminal errors, toasts and render directives are persisted to the
SQLite events table and pushed to SSE subscriber queues. A subscriber can
follow every session or a single one.
"""

import logging
import queue
import threading
import time

from reelcast.server.database import Database

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe event bus with per-session SSE subscriptions."""

    def __init__(self, db: Database, max_queue: int = 50):
        self._db = db
        self._max_queue = max_queue
        # queue -> session_id filter (None follows all sessions)
        self._subscribers: dict[queue.Queue, str | None] = {}
        self._lock = threading.Lock()

    def emit(
        self,
        event_type: str,
        title: str = "",
        detail: str = "",
        session_id: str | None = None,
    ):
        """Record an event and push it to matching subscribers.

        Args:
            event_type: "notice", "terminal-error", "toast", "render" or "teardown"
            title: Short human-readable summary
            detail: Message text, or JSON for toasts and directives
            session_id: Playback session the event belongs to, if any
        """
        now = time.time()
        try:
            self._db.execute(
                "INSERT INTO events (event_type, session_id, title, detail, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (event_type, session_id, title, detail, now),
            )
            self._db.commit()
        except Exception as e:
            logger.warning("Failed to persist %s event: %s", event_type, e)

        payload = {
            "type": event_type,
            "title": title,
            "detail": detail,
            "session_id": session_id,
            "timestamp": now,
        }

        with self._lock:
            overflowing = []
            for q, follows in self._subscribers.items():
                if follows is not None and follows != session_id:
                    continue
                try:
                    q.put_nowait(payload)
                except queue.Full:
                    overflowing.append(q)
            for q in overflowing:
                del self._subscribers[q]
                logger.debug("Dropped SSE subscriber that stopped reading")

        logger.debug("Emitted %s for session %s: %s", event_type, session_id, title)

    def subscribe(self, session_id: str | None = None) -> queue.Queue:
        """Open a subscriber queue, optionally limited to one session."""
        q = queue.Queue(maxsize=self._max_queue)
        with self._lock:
            self._subscribers[q] = session_id
            total = len(self._subscribers)
        logger.debug("New SSE subscriber for %s (total: %d)", session_id or "all sessions", total)
        return q

    def unsubscribe(self, q: queue.Queue):
        with self._lock:
            self._subscribers.pop(q, None)

    def recent(self, limit: int = 20, session_id: str | None = None) -> list[dict]:
        """Fetch recent events from the database, newest first."""
        if session_id is not None:
            return self._db.fetchall(
                "SELECT * FROM events WHERE session_id = ? ORDER BY id DESC LIMIT ?",
                (session_id, limit),
            )
        return self._db.fetchall(
            "SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)
        )

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
