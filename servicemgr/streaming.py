"""Server-sent event streaming of service log files."""

from __future__ import annotations

import errno
import json
import logging
import os
import queue
import threading
from typing import Any, Iterator, Optional

from flask import Blueprint, Response
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .api import ErrorResponse, StreamEvent, StreamMessage
from .fileutil import read_last_line, read_lines
from .manager import ServiceManager

log = logging.getLogger(__name__)

INITIAL_LINES_OF_LOG = 10000
STREAM_NAMES = ("stdout", "stderr")

_POLL_SECONDS = 0.25
_OBSERVER_JOIN_SECONDS = 5.0


def format_sse(message: Any) -> str:
    """Encode a message as one server-sent event frame."""
    to_dict = getattr(message, "to_dict", None)
    payload = to_dict() if callable(to_dict) else message
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return f"data: {body}\n\n"


def error_message(title: str, detail: str) -> StreamMessage:
    """Build an error event carrying an ErrorResponse."""
    return StreamMessage(StreamEvent.ERROR, ErrorResponse(title, detail))


class _LogFileHandler(FileSystemEventHandler):
    """Queues writes to and creations of one file."""

    def __init__(self, target: str, events: "queue.Queue[str]") -> None:
        super().__init__()
        self._target = os.path.realpath(target)
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type in (EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED):
            path = event.src_path
        elif event.event_type == EVENT_TYPE_MOVED:
            path = getattr(event, "dest_path", "")
        else:
            return
        if path and os.path.realpath(os.fsdecode(path)) == self._target:
            self._events.put(self._target)


def _stop_observer(observer: Any) -> None:
    try:
        observer.stop()
    except Exception:  # the observer may never have started
        log.debug("stopping file watcher failed", exc_info=True)
    if observer.is_alive():
        observer.join(timeout=_OBSERVER_JOIN_SECONDS)


def stream_log(
    service_manager: ServiceManager,
    logs_dir: str | os.PathLike[str],
    service_id: str,
    stream_name: str,
    stop_event: Optional[threading.Event] = None,
) -> Iterator[StreamMessage]:
    """Yield the initial lines of a service log, then each newly written last line.

    The stream ends after an error message, or once ``stop_event`` is set.
    """
    if stream_name not in STREAM_NAMES:
        raise ValueError(f"unknown stream '{stream_name}'")

    if not service_manager.service_exists(service_id):
        yield error_message(
            "Service does not exist", f"Could not find service with id '{service_id}'"
        )
        return

    full_path = os.path.join(os.fspath(logs_dir), service_id, stream_name)

    try:
        lines: Optional[list[str]] = read_lines(full_path, INITIAL_LINES_OF_LOG)
    except FileNotFoundError:
        lines = None
    except (OSError, ValueError) as exc:
        yield error_message("Error reading initial lines", str(exc))
        return

    yield StreamMessage(StreamEvent.INITIAL, lines)

    log_dir = os.path.dirname(full_path)
    events: "queue.Queue[str]" = queue.Queue()
    observer = Observer()
    try:
        if not os.path.isdir(log_dir):
            raise FileNotFoundError(errno.ENOENT, "no such file or directory", log_dir)
        observer.schedule(_LogFileHandler(full_path, events), log_dir, recursive=False)
        observer.start()
    except OSError as exc:
        _stop_observer(observer)
        yield error_message("Error adding file path to watcher", str(exc))
        return

    try:
        while stop_event is None or not stop_event.is_set():
            try:
                events.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if not observer.is_alive():
                    log.error("Watcher error: file watcher stopped")
                    yield error_message("File watcher error", "file watcher stopped unexpectedly")
                    return
                continue

            try:
                last_line = read_last_line(full_path)
            except OSError as exc:
                # Possibly transient; wait for the next event.
                log.warning("Error reading last line: %s", exc)
                continue

            yield StreamMessage(StreamEvent.APPEND, last_line)
    finally:
        _stop_observer(observer)


def create_stream_blueprint(
    service_manager: ServiceManager, logs_dir: str | os.PathLike[str]
) -> Blueprint:
    """Build the /stream routes serving stdout and stderr logs as SSE."""
    bp = Blueprint("stream", __name__, url_prefix="/stream")

    def respond(service_id: str, stream_name: str) -> Response:
        def body() -> Iterator[str]:
            messages = stream_log(service_manager, logs_dir, service_id, stream_name)
            try:
                for message in messages:
                    yield format_sse(message)
            finally:
                messages.close()
                log.info("Client disconnected")

        return Response(
            body(),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    @bp.get("/stdout/<service_id>")
    def stream_stdout(service_id: str) -> Response:
        return respond(service_id, "stdout")

    @bp.get("/stderr/<service_id>")
    def stream_stderr(service_id: str) -> Response:
        return respond(service_id, "stderr")

    return bp