"""Value types shared by the service manager."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping


class ServiceStatus(str, enum.Enum):
    """Lifecycle state of a managed service."""

    UNKNOWN = "service_unknown"
    RUNNING = "service_running"
    STOPPED = "service_stopped"


class ServiceError(Exception):
    """Raised when a service operation cannot be carried out."""


class ServiceNotFoundError(ServiceError):
    """Raised when no service has the requested ID."""


def _lookup(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Fetch a key, falling back to a case-insensitive match."""
    if key in data:
        return data[key]
    wanted = key.lower()
    for candidate, value in data.items():
        if isinstance(candidate, str) and candidate.lower() == wanted:
            return value
    return default


@dataclass
class Command:
    """An executable and the arguments it is started with."""

    name: str
    arguments: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "args": list(self.arguments)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Command":
        data = data or {}
        return cls(
            name=_lookup(data, "name", "") or "",
            arguments=list(_lookup(data, "args") or []),
        )


@dataclass
class ServiceRecord:
    """The persisted description of a registered service."""

    id: str
    name: str
    command: Command
    execute_directory: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "ID": self.id,
            "Name": self.name,
            "Cmd": self.command.to_dict(),
            "ExecuteDirectory": self.execute_directory,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServiceRecord":
        return cls(
            id=_lookup(data, "ID", "") or "",
            name=_lookup(data, "Name", "") or "",
            command=Command.from_dict(_lookup(data, "Cmd")),
            execute_directory=_lookup(data, "ExecuteDirectory", "") or "",
        )


@dataclass(frozen=True)
class ResourcesData:
    """CPU percentage and resident memory in MiB."""

    cpu_percent: float = 0.0
    ram_usage: float = 0.0


@dataclass(frozen=True)
class NetworkInfo:
    """A listening address of a service."""

    ip: str = ""
    port: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"IP": self.ip, "Port": self.port}