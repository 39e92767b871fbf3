"""Environment lookup and log file reading."""

from __future__ import annotations

import logging
import os

log = logging.getLogger(__name__)

# Longest line the reader accepts.
_MAX_LINE_BYTES = 64 * 1024
_CHUNK_SIZE = 4096


def get_env(key: str, default: str) -> str:
    """Return the environment variable ``key``, or ``default`` if unset."""
    value = os.environ.get(key)
    if value is None:
        log.info(
            "Environment variable '%s' is not set, using default value '%s'", key, default
        )
        return default
    return value


def read_lines(file_path: str | os.PathLike[str], number_of_lines: int) -> list[str]:
    """Return up to ``number_of_lines`` whitespace-trimmed lines from the file start.

    At least one line is read when the file is not empty. Raises ValueError
    for a line longer than 64 KiB.
    """
    lines: list[str] = []
    with open(file_path, "rb") as fh:
        for raw in fh:
            content = raw[:-1] if raw.endswith(b"\n") else raw
            if len(content) > _MAX_LINE_BYTES:
                raise ValueError("token too long")
            lines.append(content.decode("utf-8", errors="replace").strip())
            if len(lines) >= number_of_lines:
                break
    return lines


def read_last_line(path: str | os.PathLike[str]) -> str:
    """Return the last line of a file without its trailing newline."""
    with open(path, "rb") as fh:
        size = fh.seek(0, os.SEEK_END)
        if size == 0:
            return ""
        last = size - 1
        fh.seek(last)
        final_byte = fh.read(1)

        chunks: list[bytes] = []
        pos = last
        while pos > 0:
            start = max(0, pos - _CHUNK_SIZE)
            fh.seek(start)
            chunk = fh.read(pos - start)
            newline = chunk.rfind(b"\n")
            if newline >= 0:
                chunks.append(chunk[newline + 1 :])
                break
            chunks.append(chunk)
            pos = start

    line = b"".join(reversed(chunks)) + final_byte
    return line.decode("utf-8", errors="replace").rstrip("\n")