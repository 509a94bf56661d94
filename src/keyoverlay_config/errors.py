"""Error types for keyoverlay-config.

Startup errors (ConfigCorrupt, MissingOrInvalidField, IoFailure while
creating the default file) end the session. In-session errors are
reported to the operator and leave the editor running.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Process exit codes for the keyoverlay-config CLI."""

    SUCCESS = 0
    CONFIG_ERROR = 1  # Corrupt or incomplete config file (user fixable)
    IO_ERROR = 2  # File could not be created/read/written


class KeyOverlayConfigError(Exception):
    """Base exception for keyoverlay-config errors."""

    exit_code: ExitCode = ExitCode.CONFIG_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for structured logging."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "exit_code": int(self.exit_code),
            **self.context,
        }


class IoFailure(KeyOverlayConfigError):
    """The config file could not be created, read or written."""

    exit_code = ExitCode.IO_ERROR

    def __init__(self, message: str, path: str, **context: Any) -> None:
        super().__init__(message, path=path, **context)
        self.path = path


class ConfigCorrupt(KeyOverlayConfigError):
    """The config file exists but is not a JSON object."""

    def __init__(self, message: str, path: str, **context: Any) -> None:
        super().__init__(message, path=path, **context)
        self.path = path


class MissingOrInvalidField(KeyOverlayConfigError):
    """A schema field is missing from the config or has the wrong type."""

    def __init__(self, message: str, path: str, key: str, **context: Any) -> None:
        super().__init__(message, path=path, key=key, **context)
        self.path = path
        self.key = key


class ChannelClosed(KeyOverlayConfigError):
    """The status event producer has gone away."""
