from __future__ import annotations


class TransportError(RuntimeError):
    """A request to the messaging protocol client failed."""


class SessionError(RuntimeError):
    """The session file is missing, unreadable or malformed."""


class MirrorError(RuntimeError):
    """A call to the secondary mirror failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigError(ValueError):
    """The config file exists but cannot be used."""
