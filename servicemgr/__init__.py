"""Register, run and monitor background services over an HTTP API."""

__version__ = "1.0.0"