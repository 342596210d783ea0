"""Flask REST API for reelcast.

The player shell (browser or TUI) opens sessions here, renders whatever the
"render" directives on the event stream tell it to, and reports element and
frame events back. All fallback decisions are made server-side by the
PlaybackOrchestrator.
"""

import json
import logging
import os
import queue

from flask import Flask, Response, jsonify, request

from reelcast.config import NtfyConfig, PlayerConfig, ServerConfig
from reelcast.server.database import Database
from reelcast.server.events import EventBus
from reelcast.server.notifications import NotificationManager, create_bus_send_fn
from reelcast.server.player import MEDIA_EVENTS, PlaybackOrchestrator
from reelcast.server.sources import default_registry
from reelcast.server.surfaces import bus_surface_factory

logger = logging.getLogger(__name__)


def create_app(
    config: ServerConfig | None = None,
    player_config: PlayerConfig | None = None,
    ntfy_config: NtfyConfig | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Server configuration. Uses defaults if None.
        player_config: Orchestrator policy. Uses defaults if None.
        ntfy_config: Optional ntfy forwarding of notices.
    """
    if config is None:
        config = ServerConfig()
    if player_config is None:
        player_config = PlayerConfig()

    os.makedirs(config.data_dir, exist_ok=True)

    app = Flask(__name__)
    app.config["REELCAST"] = config

    from reelcast.__about__ import __version__ as _app_version

    db = Database(config.db_file)
    event_bus = EventBus(db)

    notifier = NotificationManager([create_bus_send_fn(event_bus)])
    if ntfy_config and ntfy_config.enabled:
        from reelcast.server.ntfy_adapter import create_ntfy_send_fn
        notifier.add_transport(
            create_ntfy_send_fn(ntfy_config.server_url, ntfy_config.topic, ntfy_config.min_severity),
            background=True,
        )
        logger.info("Forwarding notices to ntfy topic %s", ntfy_config.topic)

    registry = default_registry()
    orchestrator = PlaybackOrchestrator(
        registry=registry,
        config=player_config,
        event_bus=event_bus,
        notifier=notifier,
        surface_factory=bus_surface_factory(event_bus),
    )

    @app.teardown_appcontext
    def close_db(exc):
        db.close()

    # Global JSON error handler - prevents bare HTML 500s
    @app.errorhandler(Exception)
    def handle_exception(e):
        from werkzeug.exceptions import HTTPException
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error: %s", e)
        return jsonify({"error": str(e)}), 500

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    app.db = db
    app.event_bus = event_bus
    app.notifier = notifier
    app.sources = registry
    app.orchestrator = orchestrator

    def _lookup(session_id):
        handle = orchestrator.find(session_id)
        if handle is None:
            return None, (jsonify({"error": "session not found"}), 404)
        return handle, None

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "ok",
            "version": _app_version,
            "sessions": len(orchestrator.sessions()),
        })

    @app.route("/api/classify")
    def classify():
        url = request.args.get("url")
        if url is None:
            return jsonify({"error": "url required"}), 400
        return jsonify(registry.classify(url).to_dict())

    @app.route("/api/sources")
    def sources():
        return jsonify(registry.list_sources())

    # --- Session Endpoints ---

    @app.route("/api/sessions", methods=["POST"])
    def session_open():
        """Open a playback session. The URL itself is never rejected."""
        data = request.get_json(silent=True) or {}
        if "url" not in data:
            return jsonify({"error": "url required"}), 400
        url = str(data.get("url") or "").strip()
        title = str(data.get("title") or "")
        handle = orchestrator.open(url, title)
        return jsonify(orchestrator.snapshot(handle)), 201

    @app.route("/api/sessions")
    def session_list():
        return jsonify(orchestrator.sessions())

    @app.route("/api/sessions/<session_id>")
    def session_get(session_id):
        handle, err = _lookup(session_id)
        if err:
            return err
        return jsonify(orchestrator.snapshot(handle))

    @app.route("/api/sessions/<session_id>/events", methods=["POST"])
    def session_event(session_id):
        """Report an element/frame event for a session.

        attempt must echo the value from the "render" directive that created
        the reporting surface.
        """
        handle, err = _lookup(session_id)
        if err:
            return err
        data = request.get_json(silent=True) or {}
        event = data.get("type", "")
        if event not in MEDIA_EVENTS:
            return jsonify({"error": f"unknown event type: {event!r}"}), 400
        if data.get("attempt") is None:
            return jsonify({"error": "attempt required"}), 400
        try:
            current_time = _optional_float(data.get("current_time"))
            duration = _optional_float(data.get("duration"))
            attempt = int(data["attempt"])
        except (TypeError, ValueError):
            return jsonify({"error": "current_time, duration and attempt must be numbers"}), 400

        applied = orchestrator.dispatch(
            handle, event, attempt, current_time=current_time, duration=duration,
        )
        return jsonify({"applied": applied, "session": orchestrator.snapshot(handle)})

    @app.route("/api/sessions/<session_id>", methods=["DELETE"])
    def session_close(session_id):
        handle = orchestrator.find(session_id)
        if handle is not None:
            orchestrator.close(handle)
        return jsonify({"ok": True})

    @app.route("/api/sessions/<session_id>/dismiss", methods=["POST"])
    def session_dismiss(session_id):
        """Acknowledge a terminal error; the shell should go to redirect."""
        handle = orchestrator.find(session_id)
        if handle is not None:
            home = orchestrator.dismiss(handle)
        else:
            home = player_config.home_path
        return jsonify({"ok": True, "redirect": home})

    # --- Event Endpoints ---

    @app.route("/api/events")
    def events_stream():
        """SSE stream of real-time events, optionally for one session."""
        session_id = request.args.get("session_id")

        def generate():
            q = event_bus.subscribe(session_id)
            try:
                while True:
                    try:
                        event = q.get(timeout=30)
                        data = json.dumps(event)
                        yield f"event: {event['type']}\ndata: {data}\n\n"
                    except queue.Empty:
                        yield ": heartbeat\n\n"
            finally:
                event_bus.unsubscribe(q)

        return Response(generate(), mimetype="text/event-stream")

    @app.route("/api/events/recent")
    def events_recent():
        try:
            limit = int(request.args.get("limit", 20))
        except ValueError:
            return jsonify({"error": "limit must be an integer"}), 400
        session_id = request.args.get("session_id")
        return jsonify(event_bus.recent(limit, session_id))

    return app


def _optional_float(value):
    if value is None:
        return None
    return float(value)
