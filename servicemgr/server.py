"""HTTP application, server lifecycle and command entry point."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import threading
from pathlib import Path
from socketserver import ThreadingMixIn
from typing import Any, Callable, Iterable, Optional, Sequence
from wsgiref.simple_server import WSGIServer, make_server

from dotenv import load_dotenv
from flask import Flask, jsonify, redirect, request

from .fileutil import get_env
from .handlers import create_manager_blueprint, health_check
from .manager import ServiceManager
from .streaming import create_stream_blueprint
from .types import ServiceError

log = logging.getLogger(__name__)

_CORS_METHODS = "GET,POST,PUT,PATCH,DELETE,HEAD,OPTIONS"
_CORS_HEADERS = "Origin,Content-Length,Content-Type"
_CORS_MAX_AGE = str(12 * 60 * 60)

_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each request in its own thread."""

    daemon_threads = True


def _without_hop_by_hop(app: Callable[..., Iterable[bytes]]) -> Callable[..., Iterable[bytes]]:
    """Drop headers the WSGI server manages itself."""

    def wrapped(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        def filtered_start(status: str, headers: list, exc_info: Any = None) -> Any:
            kept = [(name, value) for name, value in headers if name.lower() not in _HOP_BY_HOP]
            return start_response(status, kept, exc_info)

        return app(environ, filtered_start)

    return wrapped


def _enable_cors(app: Flask) -> None:
    """Allow requests from every origin."""

    @app.before_request
    def preflight() -> Any:
        if (
            request.method == "OPTIONS"
            and request.headers.get("Origin")
            and request.headers.get("Access-Control-Request-Method")
        ):
            response = app.response_class(status=204)
            response.headers["Access-Control-Allow-Methods"] = _CORS_METHODS
            response.headers["Access-Control-Allow-Headers"] = _CORS_HEADERS
            response.headers["Access-Control-Max-Age"] = _CORS_MAX_AGE
            return response
        return None

    @app.after_request
    def allow_origin(response: Any) -> Any:
        if request.headers.get("Origin"):
            response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def create_app(service_manager: ServiceManager, logs_dir: str | os.PathLike[str]) -> Flask:
    """Build the Flask application with all routes."""
    app = Flask(__name__)
    _enable_cors(app)

    app.register_blueprint(create_manager_blueprint(service_manager))
    app.register_blueprint(create_stream_blueprint(service_manager, logs_dir))

    @app.get("/health")
    def health() -> Any:
        return jsonify(health_check())

    @app.get("/docs")
    def docs() -> Any:
        return redirect("/docs/index.html", code=301)

    return app


class Server:
    """Owns the service manager and serves the HTTP interface."""

    def __init__(
        self,
        logs_dir: str | os.PathLike[str],
        services_data_path: str | os.PathLike[str],
        host: str,
        port: str | int,
    ) -> None:
        self.service_manager = ServiceManager(logs_dir, services_data_path)
        try:
            self.service_manager.load_services()
        except ServiceError as exc:
            log.warning("could not load services from file: %s", exc)
        self.app = create_app(self.service_manager, logs_dir)
        self.host = host
        self.port = str(port)

    def run(self) -> None:
        """Serve until interrupted, then stop every service."""
        httpd = make_server(
            self.host,
            int(self.port),
            _without_hop_by_hop(self.app),
            server_class=_ThreadingWSGIServer,
        )
        serving = threading.Thread(target=httpd.serve_forever, name="http-server", daemon=True)
        serving.start()
        log.info("listening on %s:%s", self.host, self.port)

        quit_requested = threading.Event()
        previous = signal.signal(signal.SIGINT, lambda signum, frame: quit_requested.set())
        try:
            while not quit_requested.wait(0.5):
                if not serving.is_alive():
                    break
        finally:
            signal.signal(signal.SIGINT, previous)

        log.info("Received shutdown signal")
        httpd.shutdown()
        httpd.server_close()
        self.stop()
        log.info("server exited")

    def stop(self) -> None:
        """Stop all managed services."""
        self.service_manager.stop_all_services()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the service manager server configured from the environment."""
    parser = argparse.ArgumentParser(
        prog="servicemgr",
        description=(
            "Manage and monitor background services over HTTP. Configured by the "
            "HOST, PORT, LOGS_DIR and SERVICES_DATA environment variables or a .env file."
        ),
    )
    parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    env_file = Path(".env")
    if env_file.is_file():
        load_dotenv(env_file)
    else:
        log.info("No .env file found, using system environment variables")

    host = get_env("HOST", "0.0.0.0")
    port = get_env("PORT", "8080")
    logs_dir = get_env("LOGS_DIR", "data/logs")
    services_data = get_env("SERVICES_DATA", "data/services_data.json")

    server = Server(logs_dir, services_data, host, port)
    try:
        server.run()
    except (OSError, ValueError) as exc:
        log.error("listen: %s", exc)
        return 1
    return 0