"""CLI entry points for reelcast.

reelcast-server: Runs the Flask playback API
reelcast: Classifies URLs locally and drives sessions on a running server
"""

import argparse
import json
import logging
import os
import socket
import sys


def run_server():
    """Entry point for reelcast-server command."""
    parser = argparse.ArgumentParser(
        description="reelcast server - playback orchestration REST API"
    )
    parser.add_argument(
        "--host", default=None, help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Port to listen on (default: 5060)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to reelcast.toml config file"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug mode"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress per-request werkzeug logs"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    from reelcast.config import load_config
    from reelcast.server.app import create_app

    config = load_config(args.config)

    # CLI args override config file
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    app = create_app(config.server, player_config=config.player, ntfy_config=config.ntfy)

    if args.quiet:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logging.getLogger("reelcast").info(
        "reelcast server starting on %s:%d", config.server.host, config.server.port
    )

    _notify_systemd("READY=1")

    try:
        app.run(
            host=config.server.host,
            port=config.server.port,
            debug=args.debug,
            threaded=True,
            use_reloader=False,  # Fallback timers live in this process
        )
    finally:
        app.orchestrator.close_all()
        app.notifier.stop()


def _notify_systemd(state: str):
    """Send a notification to systemd via NOTIFY_SOCKET."""
    notify_socket = os.environ.get("NOTIFY_SOCKET")
    if not notify_socket:
        return
    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        if notify_socket.startswith("@"):
            notify_socket = "\0" + notify_socket[1:]
        sock.connect(notify_socket)
        sock.sendall(state.encode())
        sock.close()
    except OSError:
        pass


def main(argv: list[str] | None = None) -> int:
    """Entry point for reelcast command."""
    parser = argparse.ArgumentParser(
        description="reelcast - classify video links and drive playback sessions"
    )
    parser.add_argument(
        "--host", default="localhost", help="Server host (default: localhost)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Server port (default: from config or 5060)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to reelcast.toml config file"
    )
    sub = parser.add_subparsers(dest="command")

    p_classify = sub.add_parser("classify", help="Classify a URL (no server needed)")
    p_classify.add_argument("url", help="Video URL")

    p_open = sub.add_parser("open", help="Open a playback session on the server")
    p_open.add_argument("url", help="Video URL")
    p_open.add_argument("--title", default="", help="Video title")

    p_status = sub.add_parser("status", help="Show one session, or all sessions")
    p_status.add_argument("session_id", nargs="?", help="Session id (omit for all)")

    p_event = sub.add_parser("event", help="Report a player event for a session")
    p_event.add_argument("session_id", help="Session id")
    p_event.add_argument("type", help="Event type (canplay, error, load, timeupdate, ...)")
    p_event.add_argument("attempt", type=int, help="Attempt number from the render directive")
    p_event.add_argument("--current-time", type=float, default=None)
    p_event.add_argument("--duration", type=float, default=None)

    p_close = sub.add_parser("close", help="Close a session")
    p_close.add_argument("session_id", help="Session id")

    p_events = sub.add_parser("events", help="Show recent events")
    p_events.add_argument("--session", default=None, help="Only events for this session")
    p_events.add_argument("--limit", type=int, default=20, help="Number of events")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "classify":
        from reelcast.server.sources import classify
        _print(classify(args.url).to_dict())
        return 0

    from reelcast.client import ReelcastAPIError, ReelcastClient
    from reelcast.config import load_config

    config = load_config(args.config)
    port = args.port or config.server.port

    with ReelcastClient(args.host, port) as client:
        try:
            if args.command == "open":
                _print(client.open_session(args.url, args.title))
            elif args.command == "status":
                if args.session_id:
                    _print(client.get_session(args.session_id))
                else:
                    _print(client.list_sessions())
            elif args.command == "event":
                _print(client.report_event(
                    args.session_id, args.type, args.attempt,
                    current_time=args.current_time,
                    duration=args.duration,
                ))
            elif args.command == "close":
                _print(client.close_session(args.session_id))
            elif args.command == "events":
                _print(client.recent_events(args.limit, args.session))
        except ReelcastAPIError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


def _print(data):
    print(json.dumps(data, indent=2))


def run_cli():
    """Console script wrapper for main()."""
    sys.exit(main())
