"""Process helpers: log files, listening sockets and killing."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from typing import IO, Any

import psutil

from .types import NetworkInfo

log = logging.getLogger(__name__)


def open_append(file_path: str | os.PathLike[str]) -> IO[str]:
    """Open a file for appending, creating it and its parent directories."""
    parent = os.path.dirname(os.fspath(file_path))
    if parent:
        os.makedirs(parent, exist_ok=True)
    return open(file_path, "a", encoding="utf-8")


def collect_network_info(proc: Any) -> list[NetworkInfo]:
    """List the LISTEN sockets of a process and all its descendants.

    The IPv6 wildcard address "::" is reported as "0.0.0.0".
    """
    result: list[NetworkInfo] = []

    connections = getattr(proc, "net_connections", None) or proc.connections
    try:
        conns = connections(kind="inet")
    except (psutil.Error, OSError):
        conns = []

    for conn in conns:
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        ip, port = conn.laddr[0], conn.laddr[1]
        if ip == "::":
            ip = "0.0.0.0"
        result.append(NetworkInfo(ip=ip, port=port))

    try:
        children = proc.children()
    except (psutil.Error, OSError):
        children = []

    for child in children:
        result.extend(collect_network_info(child))

    return result


def kill_process_tree(pid: int, service_name: str) -> bool:
    """Forcefully terminate a service's process; return whether it worked."""
    log.info("Context cancelled for service %s", service_name)

    if sys.platform == "win32":
        try:
            completed = subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(pid)],
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            log.error("taskkill failed: %s", exc)
            return False
        if completed.returncode != 0:
            log.error("taskkill failed: exit status %d", completed.returncode)
            return False
        log.info("taskkill service %s successfully", service_name)
        return True

    try:
        os.kill(pid, signal.SIGKILL)
    except OSError as exc:
        log.error("SIGKILL system call: %s", exc)
        return False
    log.info("SIGKILL service %s successfully", service_name)
    return True