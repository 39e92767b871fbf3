import json

from servicemgr.types import (
    Command,
    NetworkInfo,
    ServiceRecord,
    ServiceStatus,
)


def test_status_serialises_as_its_value():
    assert json.dumps(ServiceStatus.RUNNING) == '"service_running"'
    assert ServiceStatus("service_stopped") is ServiceStatus.STOPPED


def test_command_round_trip():
    command = Command("python", ["-m", "http.server"])
    data = command.to_dict()
    assert data == {"name": "python", "args": ["-m", "http.server"]}
    assert Command.from_dict(data) == command


def test_command_from_dict_without_args_gives_empty_list():
    assert Command.from_dict({"name": "ls", "args": None}).arguments == []
    assert Command.from_dict({"name": "ls"}) == Command("ls", [])


def test_service_record_round_trip():
    record = ServiceRecord("abc", "web", Command("node", ["app.js"]), "/srv")
    data = record.to_dict()
    assert set(data) == {"ID", "Name", "Cmd", "ExecuteDirectory"}
    assert data["Cmd"] == {"name": "node", "args": ["app.js"]}
    assert ServiceRecord.from_dict(json.loads(json.dumps(data))) == record


def test_service_record_keys_match_case_insensitively():
    record = ServiceRecord.from_dict(
        {"id": "x1", "name": "db", "cmd": {"NAME": "pg"}, "executedirectory": "/d"}
    )
    assert record == ServiceRecord("x1", "db", Command("pg", []), "/d")


def test_network_info_to_dict():
    assert NetworkInfo("127.0.0.1", 8080).to_dict() == {"IP": "127.0.0.1", "Port": 8080}
    assert NetworkInfo().to_dict() == {"IP": "", "Port": 0}