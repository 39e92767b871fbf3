"""Request and response models of the HTTP interface."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .types import Command


def _encode(value: Any) -> Any:
    """Turn models (and lists of them) into JSON-ready values."""
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _string_field(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"field '{key}' must be a string")
    return value


def _string_list_field(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TypeError(f"field '{key}' must be a list of strings")
    return list(value)


@dataclass
class ErrorResponse:
    """The body of every error answer."""

    error_message: str
    details: str = ""

    def to_dict(self) -> dict[str, str]:
        body = {"error_message": self.error_message}
        if self.details:
            body["details"] = self.details
        return body


@dataclass
class RegisterServiceRequest:
    """Body of a registration request; name and command are required."""

    service_name: str
    command_name: str
    command_args: list[str] = field(default_factory=list)
    execute_directory: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RegisterServiceRequest":
        """Build from decoded JSON.

        Raises TypeError for fields of the wrong type and ValueError when a
        required field is missing or empty.
        """
        data = data or {}
        request = cls(
            service_name=_string_field(data, "service_name"),
            command_name=_string_field(data, "command_name"),
            command_args=_string_list_field(data, "command_args"),
            execute_directory=_string_field(data, "execute_directory"),
        )
        missing = [
            name
            for name in ("service_name", "command_name")
            if not getattr(request, name)
        ]
        if missing:
            raise ValueError(f"required fields missing: {', '.join(missing)}")
        return request


@dataclass
class ServiceIDRequest:
    """Body of requests that address one service."""

    service_id: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ServiceIDRequest":
        """Build from decoded JSON; raises TypeError for a non-string ID."""
        return cls(service_id=_string_field(data or {}, "service_id"))


@dataclass
class ServiceData:
    """A registered service as listed by the API."""

    id: str
    name: str
    cmd: Command
    execute_directory: str
    is_running: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cmd": self.cmd.to_dict(),
            "execute_directory": self.execute_directory,
            "is_running": self.is_running,
        }


@dataclass
class ServiceMetrics:
    """Uptime in seconds, CPU percentage and RAM in MiB."""

    uptime: int = 0
    cpu_percent: float = 0.0
    ram_usage: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "uptime": self.uptime,
            "cpu_percent": self.cpu_percent,
            "ram_usage": self.ram_usage,
        }


class StreamEvent(str, enum.Enum):
    """Kinds of messages sent on a log stream."""

    INITIAL = "event_initial"
    APPEND = "event_append"
    ERROR = "event_error"


@dataclass
class StreamMessage:
    """One server-sent event payload."""

    type: StreamEvent
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": StreamEvent(self.type).value, "data": _encode(self.data)}