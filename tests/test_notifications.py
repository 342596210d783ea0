"""Tests for NotificationManager and the bus transport."""

import json
import threading
import time

from reelcast.server.notifications import (
    Notice,
    NotificationManager,
    Severity,
    create_bus_send_fn,
)


class TestNotice:
    def test_defaults(self):
        notice = Notice("Title", "Body")
        assert notice.severity == Severity.INFO
        assert notice.duration_ms == 3000

    def test_to_dict(self):
        notice = Notice("Oops", "Broken", Severity.DESTRUCTIVE, 10000)
        assert notice.to_dict() == {
            "title": "Oops",
            "description": "Broken",
            "severity": "destructive",
            "duration_ms": 10000,
        }


class TestNotificationManager:
    def test_fans_out_to_all_transports(self):
        a, b = [], []
        manager = NotificationManager([a.append])
        manager.add_transport(b.append)
        assert manager.transport_count == 2
        notice = Notice("Hi", "there")
        manager.send(notice)
        assert a == [notice]
        assert b == [notice]

    def test_no_transports_is_fine(self):
        NotificationManager().send(Notice("Hi", "there"))

    def test_failing_transport_does_not_block_others(self):
        received = []

        def broken(notice):
            raise ConnectionError("down")

        manager = NotificationManager([broken, received.append])
        manager.send(Notice("Hi", "there"))
        assert len(received) == 1


class TestBusSendFn:
    def test_emits_toast(self, event_bus):
        send_fn = create_bus_send_fn(event_bus, session_id="s1")
        send_fn(Notice("Trying an alternate method", "Loading...", Severity.INFO, 3000))
        row = event_bus.recent()[0]
        assert row["event_type"] == "toast"
        assert row["session_id"] == "s1"
        assert json.loads(row["detail"])["duration_ms"] == 3000


class TestBackgroundTransports:
    def test_background_delivery(self):
        delivered = threading.Event()
        received = []

        def slow(notice):
            received.append(notice)
            delivered.set()

        manager = NotificationManager()
        manager.add_transport(slow, background=True)
        manager.send(Notice("Hi", "there"))
        assert delivered.wait(timeout=2)
        assert received[0].title == "Hi"
        manager.stop()

    def test_blocked_transport_does_not_block_send(self):
        release = threading.Event()
        inline = []

        def hung(notice):
            release.wait(timeout=5)

        manager = NotificationManager([inline.append])
        manager.add_transport(hung, background=True)
        assert manager.transport_count == 2
        start = time.monotonic()
        manager.send(Notice("Hi", "there"))
        assert time.monotonic() - start < 1
        assert len(inline) == 1
        release.set()
        manager.stop()

    def test_background_failure_is_logged(self, caplog):
        done = threading.Event()

        def broken(notice):
            done.set()
            raise OSError("ntfy unreachable")

        manager = NotificationManager()
        manager.add_transport(broken, background=True)
        manager.send(Notice("Hi", "there"))
        assert done.wait(timeout=2)
        manager.stop()
        assert "ntfy unreachable" in caplog.text

    def test_stop_without_worker(self):
        NotificationManager().stop()
