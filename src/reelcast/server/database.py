"""SQLite database for reelcast.

Stores the playback event log (notices, terminal errors, render directives).
Auto-creates the schema on startup.
"""

import logging
import os
import sqlite3
import threading
import time

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    session_id TEXT,
    title TEXT NOT NULL DEFAULT '',
    detail TEXT NOT NULL DEFAULT '',
    created_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_created ON events(created_at);
CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type);
CREATE INDEX IF NOT EXISTS idx_events_session ON events(session_id);
"""


class Database:
    """Thread-safe SQLite database manager for reelcast."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._local = threading.local()
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a thread-local connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA busy_timeout=5000")
        return self._local.conn

    def _init_schema(self):
        """Create tables if they don't exist."""
        conn = self._get_conn()
        conn.executescript(SCHEMA_SQL)

        row = conn.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        conn.commit()

        logger.info("Database initialized at %s (schema v%d)", self.db_path, SCHEMA_VERSION)

    _RETRY_DELAYS = [0.1, 0.5, 1.0]

    def _retry_when_locked(self, operation, description: str = "DB operation"):
        """Run a DB operation, retrying with backoff while the database is locked."""
        try:
            return operation(self._get_conn())
        except sqlite3.OperationalError as e:
            if "database is locked" not in str(e):
                raise
            last_exc = e
            for attempt, delay in enumerate(self._RETRY_DELAYS, start=1):
                logger.warning(
                    "SQLite %s locked (attempt %d/%d), retrying in %.1fs",
                    description, attempt, len(self._RETRY_DELAYS), delay,
                )
                time.sleep(delay)
                try:
                    return operation(self._get_conn())
                except sqlite3.OperationalError as retry_e:
                    last_exc = retry_e
            raise last_exc

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self._retry_when_locked(
            lambda conn: conn.execute(sql, params), "execute"
        )

    def commit(self):
        self._retry_when_locked(lambda conn: conn.commit(), "commit")

    def fetchone(self, sql: str, params: tuple = ()) -> dict | None:
        """Execute and fetch one row as dict."""
        row = self.execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute and fetch all rows as dicts."""
        return [dict(row) for row in self.execute(sql, params).fetchall()]

    def close(self):
        """Close the thread-local connection."""
        if hasattr(self._local, "conn") and self._local.conn:
            self._local.conn.close()
            self._local.conn = None
