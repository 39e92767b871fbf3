import json
import threading
import time

import pytest
from flask import Flask

from servicemgr.api import ErrorResponse, StreamEvent, StreamMessage
from servicemgr.manager import ServiceManager
from servicemgr.streaming import (
    create_stream_blueprint,
    error_message,
    format_sse,
    stream_log,
)


@pytest.fixture
def logs_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def manager(tmp_path, logs_dir):
    return ServiceManager(logs_dir, tmp_path / "services.json")


def _parse_events(body):
    frames = [frame for frame in body.split("\n\n") if frame]
    assert all(frame.startswith("data: ") for frame in frames)
    return [json.loads(frame[len("data: "):]) for frame in frames]


def test_format_sse_wire_format():
    frame = format_sse(StreamMessage(StreamEvent.INITIAL, ["a", "b"]))
    assert frame == 'data: {"type":"event_initial","data":["a","b"]}\n\n'


def test_format_sse_round_trip_of_error():
    frame = format_sse(error_message("Bad thing", "it broke"))
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    payload = json.loads(frame[len("data: "):-2])
    assert payload == {
        "type": "event_error",
        "data": {"error_message": "Bad thing", "details": "it broke"},
    }


def test_format_sse_accepts_plain_mapping():
    frame = format_sse({"type": "event_append", "data": "line"})
    assert json.loads(frame[len("data: "):]) == {"type": "event_append", "data": "line"}


def test_error_message_builds_error_event():
    message = error_message("title", "detail")
    assert message.type is StreamEvent.ERROR
    assert message.data == ErrorResponse("title", "detail")


def test_stream_log_unknown_service(manager, logs_dir):
    messages = list(stream_log(manager, logs_dir, "missing", "stdout"))
    assert len(messages) == 1
    assert messages[0].type is StreamEvent.ERROR
    assert messages[0].data.error_message == "Service does not exist"
    assert messages[0].data.details == "Could not find service with id 'missing'"


def test_stream_log_rejects_unknown_stream_name(manager, logs_dir):
    with pytest.raises(ValueError):
        next(stream_log(manager, logs_dir, "anything", "stdin"))


def test_stream_log_without_log_directory(manager, logs_dir):
    service = manager.register_service("web", "echo", [], "")
    messages = list(stream_log(manager, logs_dir, service.id, "stdout"))
    assert [m.type for m in messages] == [StreamEvent.INITIAL, StreamEvent.ERROR]
    assert messages[0].data is None
    assert messages[1].data.error_message == "Error adding file path to watcher"


def test_stream_log_initial_lines_are_trimmed(manager, logs_dir):
    service = manager.register_service("web", "echo", [], "")
    log_file = logs_dir / service.id / "stderr"
    log_file.parent.mkdir(parents=True)
    log_file.write_text("  one  \ntwo\n")
    stop = threading.Event()
    stop.set()
    messages = list(stream_log(manager, logs_dir, service.id, "stderr", stop))
    assert len(messages) == 1
    assert messages[0].type is StreamEvent.INITIAL
    assert messages[0].data == ["one", "two"]


def test_stream_log_reports_appended_line(manager, logs_dir):
    service = manager.register_service("web", "echo", [], "")
    log_file = logs_dir / service.id / "stdout"
    log_file.parent.mkdir(parents=True)
    log_file.write_text("first\n")

    stop = threading.Event()
    gen = stream_log(manager, logs_dir, service.id, "stdout", stop)
    initial = next(gen)
    assert initial.data == ["first"]

    def writer():
        time.sleep(0.5)
        with open(log_file, "a", encoding="utf-8") as fh:
            fh.write("second\n")

    threading.Thread(target=writer, daemon=True).start()
    timer = threading.Timer(10, stop.set)
    timer.start()
    found = None
    try:
        for message in gen:
            if message.data == "second":
                found = message
                break
    finally:
        timer.cancel()
        stop.set()
        gen.close()

    assert found is not None
    assert found.type is StreamEvent.APPEND


def test_blueprint_unknown_service_sends_error(manager, logs_dir):
    app = Flask(__name__)
    app.register_blueprint(create_stream_blueprint(manager, logs_dir))
    response = app.test_client().get("/stream/stdout/nope")
    assert response.status_code == 200
    assert response.mimetype == "text/event-stream"
    assert response.headers["Cache-Control"] == "no-cache"
    events = _parse_events(response.get_data(as_text=True))
    assert len(events) == 1
    assert events[0]["type"] == "event_error"
    assert events[0]["data"]["error_message"] == "Service does not exist"


def test_blueprint_stderr_without_logs(manager, logs_dir):
    service = manager.register_service("worker", "echo", [], "")
    app = Flask(__name__)
    app.register_blueprint(create_stream_blueprint(manager, logs_dir))
    response = app.test_client().get(f"/stream/stderr/{service.id}")
    events = _parse_events(response.get_data(as_text=True))
    assert [e["type"] for e in events] == ["event_initial", "event_error"]
    assert events[0]["data"] is None