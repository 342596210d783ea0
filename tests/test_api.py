"""Tests for the Flask REST API.

Uses the Flask test client. Surfaces render over the event bus, so no
browser is needed; tests play the shell by posting element events.
"""

from reelcast.config import PlayerConfig, ServerConfig
from reelcast.server.app import create_app

DRIVE_URL = "https://drive.google.com/file/d/XYZ789/view?usp=sharing"


def _open(client, url, title=""):
    resp = client.post("/api/sessions", json={"url": url, "title": title})
    assert resp.status_code == 201
    return resp.get_json()


class TestHealthEndpoint:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert "version" in data
        assert data["sessions"] == 0

    def test_cors_headers(self, client):
        resp = client.get("/api/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


class TestClassifyEndpoint:
    def test_classify_drive(self, client):
        resp = client.get("/api/classify", query_string={"url": DRIVE_URL})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["kind"] == "google_drive"
        assert data["provider_id"] == "XYZ789"
        assert [s["mode"] for s in data["strategies"]] == ["native", "frame"]

    def test_classify_requires_url(self, client):
        assert client.get("/api/classify").status_code == 400

    def test_classify_empty_url_is_direct(self, client):
        resp = client.get("/api/classify?url=")
        assert resp.get_json()["kind"] == "direct"

    def test_sources(self, client):
        data = client.get("/api/sources").get_json()
        assert data == ["google_drive", "archive_org", "youtube", "direct"]


class TestSessionEndpoints:
    def test_open_session(self, client):
        data = _open(client, DRIVE_URL, "Episode 1")
        assert data["state"] == "loading"
        assert data["title"] == "Episode 1"
        assert data["strategy_index"] == 0
        assert data["strategy"]["address"] == "https://drive.google.com/uc?id=XYZ789"

    def test_open_requires_url(self, client):
        assert client.post("/api/sessions", json={}).status_code == 400

    def test_open_never_rejects_url(self, client):
        data = _open(client, "not a url")
        assert data["kind"] == "direct"

    def test_list_and_get(self, client):
        data = _open(client, "https://x.com/a.mp4")
        assert len(client.get("/api/sessions").get_json()) == 1
        resp = client.get(f"/api/sessions/{data['session_id']}")
        assert resp.get_json()["session_id"] == data["session_id"]

    def test_get_unknown_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404

    def test_drive_fallback_flow(self, client, app):
        session_id = _open(client, DRIVE_URL)["session_id"]

        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "error", "attempt": 0})
        data = resp.get_json()
        assert data["applied"] is True
        assert data["session"]["strategy_index"] == 1
        assert data["session"]["strategy"]["mode"] == "frame"
        assert data["session"]["events"][0]["type"] == "notice"

        # stale event from the torn-down element
        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "canplay", "attempt": 0})
        assert resp.get_json()["applied"] is False

        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "load", "attempt": 1})
        assert resp.get_json()["session"]["state"] == "paused"

        types = [r["event_type"] for r in app.event_bus.recent(session_id=session_id)]
        # newest first: the notice reaches the shell before the next render
        assert types == ["render", "notice", "teardown", "render"]

    def test_terminal_error_flow(self, client):
        session_id = _open(client, DRIVE_URL)["session_id"]
        client.post(f"/api/sessions/{session_id}/events", json={"type": "error", "attempt": 0})
        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "error", "attempt": 1})
        session = resp.get_json()["session"]
        assert session["state"] == "terminal_error"
        assert "XYZ789" in session["remediation"]

    def test_progress_reported(self, client):
        session_id = _open(client, "https://x.com/a.mp4")["session_id"]
        resp = client.post(
            f"/api/sessions/{session_id}/events",
            json={"type": "timeupdate", "attempt": 0, "current_time": 50, "duration": 100},
        )
        session = resp.get_json()["session"]
        assert session["progress"] == 50.0
        assert session["current_time_display"] == "0:50"

    def test_event_unknown_type(self, client):
        session_id = _open(client, "https://x.com/a.mp4")["session_id"]
        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "boom"})
        assert resp.status_code == 400

    def test_event_bad_number(self, client):
        session_id = _open(client, "https://x.com/a.mp4")["session_id"]
        resp = client.post(
            f"/api/sessions/{session_id}/events",
            json={"type": "timeupdate", "attempt": 0, "current_time": "soon"},
        )
        assert resp.status_code == 400

    def test_event_requires_attempt(self, client):
        session_id = _open(client, DRIVE_URL)["session_id"]
        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "canplay"})
        assert resp.status_code == 400
        assert client.get(f"/api/sessions/{session_id}").get_json()["state"] == "loading"

    def test_late_event_after_fallback_dropped(self, client, app):
        session_id = _open(client, DRIVE_URL)["session_id"]
        app.orchestrator.dispatch(app.orchestrator.find(session_id), "error", 0)
        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "error", "attempt": 0})
        data = resp.get_json()
        assert data["applied"] is False
        assert data["session"]["state"] == "loading"
        assert data["session"]["strategy_index"] == 1

    def test_event_unknown_session(self, client):
        resp = client.post("/api/sessions/nope/events", json={"type": "canplay"})
        assert resp.status_code == 404

    def test_close_session(self, client):
        session_id = _open(client, "https://x.com/a.mp4")["session_id"]
        assert client.delete(f"/api/sessions/{session_id}").get_json() == {"ok": True}
        assert client.get(f"/api/sessions/{session_id}").status_code == 404
        # idempotent
        assert client.delete(f"/api/sessions/{session_id}").status_code == 200

    def test_events_after_close_not_found(self, client):
        session_id = _open(client, DRIVE_URL)["session_id"]
        client.delete(f"/api/sessions/{session_id}")
        resp = client.post(f"/api/sessions/{session_id}/events", json={"type": "error", "attempt": 0})
        assert resp.status_code == 404

    def test_open_replaces_previous(self, client):
        first = _open(client, "https://x.com/a.mp4")["session_id"]
        _open(client, "https://x.com/b.mp4")
        assert client.get(f"/api/sessions/{first}").status_code == 404
        assert len(client.get("/api/sessions").get_json()) == 1

    def test_dismiss(self, client):
        session_id = _open(client, "https://youtu.be/dQw4w9WgXcQ")["session_id"]
        client.post(f"/api/sessions/{session_id}/events", json={"type": "error", "attempt": 0})
        resp = client.post(f"/api/sessions/{session_id}/dismiss")
        assert resp.get_json() == {"ok": True, "redirect": "/"}
        assert client.get(f"/api/sessions/{session_id}").status_code == 404

    def test_dismiss_custom_home(self, tmp_path):
        app = create_app(
            ServerConfig(data_dir=str(tmp_path), db_file=str(tmp_path / "t.db")),
            player_config=PlayerConfig(home_path="/library"),
        )
        client = app.test_client()
        resp = client.post("/api/sessions/unknown/dismiss")
        assert resp.get_json()["redirect"] == "/library"
        app.orchestrator.close_all()
