import socket
import subprocess
import sys
from types import SimpleNamespace

import psutil
import pytest

from servicemgr.procutil import collect_network_info, kill_process_tree, open_append
from servicemgr.types import NetworkInfo


class FakeProcess:
    def __init__(self, conns=None, children=None, fail_conns=False):
        self._conns = conns or []
        self._children = children or []
        self._fail_conns = fail_conns

    def net_connections(self, kind="inet"):
        if self._fail_conns:
            raise psutil.AccessDenied()
        return self._conns

    def children(self):
        return self._children


def conn(status, ip, port):
    return SimpleNamespace(status=status, laddr=(ip, port))


def test_open_append_creates_parents_and_appends(tmp_path):
    target = tmp_path / "a" / "b" / "stdout"
    with open_append(target) as fh:
        fh.write("one\n")
    with open_append(target) as fh:
        fh.write("two\n")
    assert target.read_text(encoding="utf-8") == "one\ntwo\n"


def test_collect_normalises_wildcard_and_skips_non_listen():
    proc = FakeProcess(
        conns=[
            conn("LISTEN", "::", 8080),
            conn("ESTABLISHED", "10.0.0.1", 5000),
            conn("LISTEN", "127.0.0.1", 9000),
        ]
    )
    assert collect_network_info(proc) == [
        NetworkInfo("0.0.0.0", 8080),
        NetworkInfo("127.0.0.1", 9000),
    ]


def test_collect_recurses_into_children_despite_errors():
    grandchild = FakeProcess(conns=[conn("LISTEN", "0.0.0.0", 7000)])
    child = FakeProcess(children=[grandchild], fail_conns=True)
    root = FakeProcess(conns=[conn("LISTEN", "127.0.0.1", 6000)], children=[child])
    assert collect_network_info(root) == [
        NetworkInfo("127.0.0.1", 6000),
        NetworkInfo("0.0.0.0", 7000),
    ]


def test_collect_finds_real_listening_socket():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        port = sock.getsockname()[1]
        found = collect_network_info(psutil.Process())
    assert NetworkInfo("127.0.0.1", port) in found


def test_kill_process_tree_terminates_process():
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    try:
        assert kill_process_tree(proc.pid, "sleeper") is True
        assert proc.wait(timeout=10) != 0
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()


def test_kill_missing_process_reports_failure():
    assert kill_process_tree(99999999, "ghost") is False