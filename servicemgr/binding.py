"""Decoding and validation of JSON request bodies."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any, Protocol, TypeVar, Union

from .api import ErrorResponse

T = TypeVar("T", covariant=True)


class _FromDict(Protocol[T]):
    def from_dict(self, data: Any) -> T: ...


class BindError(Exception):
    """A request body could not be bound; carries the HTTP status and error body."""

    def __init__(self, status: int, error: ErrorResponse) -> None:
        super().__init__(error.error_message)
        self.status = status
        self.error = error


def _bad_request(details: str) -> BindError:
    return BindError(HTTPStatus.BAD_REQUEST, ErrorResponse("Bad request", details))


def bind_request(model: _FromDict[T], body: Union[bytes, str, None]) -> T:
    """Decode a JSON body into ``model``.

    Malformed JSON or fields of the wrong type give a 400 BindError; missing
    required fields give a 422 BindError.
    """
    if body is None:
        raise _bad_request("invalid request")
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise _bad_request(str(exc)) from exc
    else:
        text = body

    if not text.strip():
        raise _bad_request("EOF")

    try:
        data = json.loads(text)
    except ValueError as exc:
        raise _bad_request(str(exc)) from exc

    if data is not None and not isinstance(data, dict):
        raise _bad_request(
            f"cannot unmarshal {type(data).__name__} into request object"
        )

    try:
        return model.from_dict(data)
    except TypeError as exc:
        raise _bad_request(str(exc)) from exc
    except ValueError as exc:
        raise BindError(
            HTTPStatus.UNPROCESSABLE_ENTITY,
            ErrorResponse(
                "Invalid request schema",
                "One or many fields of the request is not correct",
            ),
        ) from exc