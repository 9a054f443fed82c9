#!/usr/bin/env python3
"""Web server for real-time magnetic field visualization.

Runs the ingestion loop in a background thread and broadcasts the
five series and the accuracy state to connected WebSocket clients.
Start and stop are exposed over HTTP and WebSocket.
"""

import argparse
import logging
import sys
import threading
from typing import Optional, Tuple

from flask import Flask, jsonify, render_template
from flask_socketio import SocketIO, emit

from .communication import SourceError
from .core import Config, SensorValidator, load_config
from .fusion import Session, SensorEventRouter
from .main import create_source, run_ingestion, setup_logging
from .monitoring import EventMonitor

logger = logging.getLogger(__name__)


def create_app(session: Session, monitor: Optional[EventMonitor] = None) -> Tuple[Flask, SocketIO]:
    """Build the Flask application serving one session.

    Args:
        session: Session whose series are served.
        monitor: Optional monitor whose statistics are served.

    Returns:
        (app, socketio) pair.
    """
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "magnetic_viewer_secret"
    socketio = SocketIO(app, cors_allowed_origins="*")

    def state_payload() -> dict:
        payload = session.to_dict()
        if monitor is not None:
            payload["stats"] = monitor.get_stats().to_dict()
        return payload

    @app.route("/")
    def index():
        """Serve the main visualization page."""
        return render_template("index.html")

    @app.route("/api/series")
    def series():
        """Return every series and the accuracy state."""
        return jsonify(state_payload())

    @app.route("/api/start", methods=["POST"])
    def start():
        """Start a new session, clearing previous data."""
        session.start()
        if monitor is not None:
            monitor.reset()
        return jsonify({"active": session.is_active})

    @app.route("/api/stop", methods=["POST"])
    def stop():
        """Stop the session, keeping the last data."""
        session.stop()
        return jsonify({"active": session.is_active})

    @socketio.on("connect")
    def handle_connect():
        """Handle WebSocket client connection."""
        logger.info("WebSocket client connected")

    @socketio.on("disconnect")
    def handle_disconnect():
        """Handle WebSocket client disconnection."""
        logger.info("WebSocket client disconnected")

    @socketio.on("start")
    def handle_start():
        """Start a new session from a WebSocket client."""
        session.start()
        if monitor is not None:
            monitor.reset()
        emit("session_state", {"active": session.is_active})

    @socketio.on("stop")
    def handle_stop():
        """Stop the session from a WebSocket client."""
        session.stop()
        emit("session_state", {"active": session.is_active})

    app.extensions["magnetic_viewer.state_payload"] = state_payload
    return app, socketio


def start_broadcast(socketio: SocketIO, app: Flask, emit_rate_hz: float) -> None:
    """Emit series updates to all clients at a fixed rate.

    Args:
        socketio: SocketIO server.
        app: Application created by create_app().
        emit_rate_hz: Updates per second.
    """
    state_payload = app.extensions["magnetic_viewer.state_payload"]
    interval = 1.0 / emit_rate_hz

    def broadcast_loop() -> None:
        while True:
            socketio.emit("series_update", state_payload())
            socketio.sleep(interval)

    socketio.start_background_task(broadcast_loop)


def main() -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Web server for magnetic field visualization"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock sensor source for testing",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    try:
        config = load_config(args.config)
    except Exception as e:
        logger.warning("Could not load config: %s, using defaults", e)
        config = Config()

    host = args.host or config.web.host
    port = args.port or config.web.port

    session = Session(config)
    router = SensorEventRouter(session)
    monitor = EventMonitor(config, session)
    source = create_source(config, args.mock)
    stop_event = threading.Event()

    app, socketio = create_app(session, monitor)

    try:
        source.open()
    except SourceError as e:
        logger.error("Source error: %s", e)
        return 1

    ingestion = threading.Thread(
        target=run_ingestion,
        args=(source, router, SensorValidator(config), monitor, stop_event.is_set),
        daemon=True,
    )
    ingestion.start()
    start_broadcast(socketio, app, config.web.emit_rate_hz)

    try:
        logger.info("=" * 60)
        logger.info("Web server starting on http://%s:%d", host, port)
        logger.info("=" * 60)

        socketio.run(app, host=host, port=port, debug=False)

    except KeyboardInterrupt:
        logger.info("Server interrupted")

    finally:
        stop_event.set()
        session.stop()
        ingestion.join(timeout=2.0)
        source.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
