"""A single managed command and its process lifecycle."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
import uuid
from typing import IO, Callable, Optional, Sequence

import psutil

from .procutil import collect_network_info, kill_process_tree
from .types import Command, NetworkInfo, ResourcesData, ServiceError, ServiceStatus

log = logging.getLogger(__name__)

LineHandler = Callable[["Service", str], None]

# Longest output line accepted before reading of that stream stops.
_MAX_LINE_LENGTH = 64 * 1024
# How long to wait for output readers once the process has exited.
_READER_GRACE_SECONDS = 5.0


class Service:
    """A command the manager can start, monitor and stop."""

    def __init__(
        self,
        service_id: str,
        name: str,
        command: Command,
        execute_directory: str = "",
        stdout_handler: Optional[LineHandler] = None,
        stderr_handler: Optional[LineHandler] = None,
    ) -> None:
        self.id = service_id
        self.name = name
        self.command = command
        self.execute_directory = execute_directory
        self._stdout_handler = stdout_handler
        self._stderr_handler = stderr_handler
        self._lock = threading.Lock()
        self._status = ServiceStatus.STOPPED
        self._pid: Optional[int] = None
        self._process: Optional[subprocess.Popen] = None
        self._started_at: Optional[float] = None
        self._cancel: Optional[threading.Event] = None
        self._runner: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"Service(id={self.id!r}, name={self.name!r}, status={self.status().value!r})"

    def status(self) -> ServiceStatus:
        with self._lock:
            return self._status

    def start(self) -> None:
        """Launch the command in the background."""
        with self._lock:
            if self._status is ServiceStatus.RUNNING:
                raise ServiceError(
                    f"service '{self.name}' (ID: '{self.id}') is already running"
                )
            cancel = threading.Event()
            runner = threading.Thread(
                target=self._run,
                args=(cancel,),
                name=f"service-{self.id}",
                daemon=True,
            )
            self._status = ServiceStatus.RUNNING
            self._cancel = cancel
            self._runner = runner
            self._started_at = time.monotonic()
            runner.start()

    def stop(self) -> None:
        """Kill the running command and wait for it to exit."""
        with self._lock:
            if self._status is ServiceStatus.STOPPED:
                raise ServiceError(f"service '{self.name}' (ID: '{self.id}') is not running")
            cancel, runner, process = self._cancel, self._runner, self._process
            if cancel is not None:
                cancel.set()

        if process is not None and process.poll() is None:
            kill_process_tree(process.pid, self.name)

        if runner is not None:
            runner.join()

        with self._lock:
            self._cancel = None

    def resources_usage(self) -> ResourcesData:
        """CPU percentage over the process lifetime and RSS in MiB."""
        with self._lock:
            pid = self._pid
        if pid is None:
            return ResourcesData()
        try:
            proc = psutil.Process(pid)
        except (psutil.Error, OSError):
            return ResourcesData()

        cpu_percent = 0.0
        ram_usage = 0.0
        try:
            times = proc.cpu_times()
            elapsed = time.time() - proc.create_time()
            if elapsed > 0:
                cpu_percent = 100.0 * (times.user + times.system) / elapsed
        except (psutil.Error, OSError):
            pass
        try:
            ram_usage = proc.memory_info().rss / 1024.0 / 1024.0
        except (psutil.Error, OSError):
            pass
        return ResourcesData(cpu_percent=cpu_percent, ram_usage=ram_usage)

    def uptime(self) -> int:
        """Whole seconds since start, or 0 when not running."""
        with self._lock:
            started_at = self._started_at
        if started_at is None:
            return 0
        return int(time.monotonic() - started_at)

    def network_info(self) -> list[NetworkInfo]:
        """Listening sockets of the process tree, or one empty entry."""
        default = [NetworkInfo(ip="", port=0)]
        with self._lock:
            pid = self._pid
        if pid is None:
            return default
        try:
            proc = psutil.Process(pid)
        except (psutil.Error, OSError):
            return default
        return collect_network_info(proc) or default

    def _run(self, cancel: threading.Event) -> None:
        try:
            try:
                process = subprocess.Popen(
                    [self.command.name, *self.command.arguments],
                    cwd=self.execute_directory or None,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except OSError as exc:
                log.error("start command for service %s: %s", self.name, exc)
                return

            with self._lock:
                self._process = process
                self._pid = process.pid
                cancelled = cancel.is_set()
            if cancelled:
                kill_process_tree(process.pid, self.name)

            readers = [
                threading.Thread(
                    target=self._stream_output,
                    args=(process.stdout, self._stdout_handler),
                    daemon=True,
                ),
                threading.Thread(
                    target=self._stream_output,
                    args=(process.stderr, self._stderr_handler),
                    daemon=True,
                ),
            ]
            for reader in readers:
                reader.start()

            returncode = process.wait()
            for reader in readers:
                reader.join(timeout=_READER_GRACE_SECONDS)

            if cancel.is_set():
                log.info("service %s cancelled", self.name)
            elif returncode != 0:
                log.warning("exit command for service %s: exit status %d", self.name, returncode)
        finally:
            with self._lock:
                self._status = ServiceStatus.STOPPED
                self._started_at = None
                self._process = None

    def _stream_output(self, reader: Optional[IO[str]], handler: Optional[LineHandler]) -> None:
        if reader is None:
            return
        with reader:
            for raw in reader:
                line = raw.rstrip("\r\n")
                if len(line) > _MAX_LINE_LENGTH:
                    log.error("error reading: token too long")
                    break
                if handler is None:
                    continue
                try:
                    handler(self, line)
                except Exception:  # a faulty handler must not stop the stream
                    log.exception("output handler failed for service %s", self.name)


def create_service(
    service_id: str,
    service_name: str,
    command_name: str,
    command_args: Optional[Sequence[str]],
    execute_directory: str,
    stdout_handler: Optional[LineHandler],
    stderr_handler: Optional[LineHandler],
) -> Service:
    """Validate the inputs and build a stopped service, generating an ID if empty."""
    if not service_id:
        service_id = str(uuid.uuid4())
    if not service_name:
        raise ServiceError("service name cannot be empty")
    if not command_name:
        raise ServiceError("command name cannot be empty")
    return Service(
        service_id,
        service_name,
        Command(command_name, list(command_args or [])),
        execute_directory or "",
        stdout_handler,
        stderr_handler,
    )