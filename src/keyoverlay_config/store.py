"""Configuration store for the keyoverlay daemon's JSON config file.

All filesystem access for the config file goes through ConfigStore:

  - open_or_create()  parse the file, writing the built-in default first
                      if it does not exist yet
  - raw_text()        the exact bytes currently on disk
  - read_field()      typed lookup of one schema field
  - replace()         atomic overwrite (temp file + os.replace)

The on-disk layout produced by render_config() is the same layout as the
built-in default, so a freshly created file compares equal to the
canonical JSON of an unedited draft.
"""

from __future__ import annotations

import json
import os
import re
import stat
import tempfile
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .errors import ConfigCorrupt, IoFailure, MissingOrInvalidField
from .logging import get_logger, log_context

_log = get_logger("keyoverlay-config.store")

DEFAULT_CONFIG_FILE = "keyoverlay.json"

SCHEMA_FIELDS = ("web_port", "socket_port", "keys", "reset")
PORT_FIELDS = ("web_port", "socket_port")

MAX_PORT = 65535

DEFAULT_WEB_PORT = 7685
DEFAULT_SOCKET_PORT = 7686
DEFAULT_KEYS = ("Z", "X")
DEFAULT_RESET = "End"

WIKI_URL = "https://github.com/TheRacc2/keyoverlay-rs/wiki"

_PORT_RE = re.compile(r"[0-9]+")


def parse_port(text: str) -> Optional[int]:
    """Parse a uint16 port from user text. Returns None if invalid.

    Decimal digits only. Surrounding whitespace and leading zeros are
    accepted.
    """
    text = text.strip()
    if not _PORT_RE.fullmatch(text):
        return None
    value = int(text)
    if value > MAX_PORT:
        return None
    return value


def _quote(value: str) -> str:
    """Quote a string for the config file, escaping only quote and backslash."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def render_config(web_port: int, socket_port: int, keys: Iterable[str], reset: str) -> str:
    """Render the four schema fields in the config file's fixed layout."""
    key_list = ", ".join(_quote(k) for k in keys)
    return (
        "{\n"
        f'    "web_port": {web_port},\n'
        f'    "socket_port": {socket_port},\n'
        f'    "keys": [ {key_list} ],\n'
        f'    "reset": {_quote(reset)}\n'
        "}"
    )


DEFAULT_CONFIG_TEXT = render_config(DEFAULT_WEB_PORT, DEFAULT_SOCKET_PORT, DEFAULT_KEYS, DEFAULT_RESET)


def _recovery_hint(path: str) -> str:
    return f"Deleting the file ({path}) and re-opening the program may fix this issue"


def _coerce_field(key: str, value: Any, path: str) -> Any:
    """Coerce a raw JSON value to the schema type for *key*."""
    def invalid(expected: str) -> MissingOrInvalidField:
        return MissingOrInvalidField(
            f'Failed to read key "{key}" from config (expected {expected}, '
            f"got {type(value).__name__}). {_recovery_hint(path)}",
            path=path, key=key,
        )

    if key in PORT_FIELDS:
        if isinstance(value, bool):
            raise invalid("a port number")
        if isinstance(value, int):
            if 0 <= value <= MAX_PORT:
                return value
            raise invalid("a port number between 0 and 65535")
        if isinstance(value, str):
            port = parse_port(value)
            if port is not None:
                return port
        raise invalid("a port number")
    if key == "keys":
        if isinstance(value, list) and all(isinstance(k, str) for k in value):
            return list(value)
        raise invalid("a list of strings")
    if key == "reset":
        if isinstance(value, str):
            return value
        raise invalid("a string")
    raise MissingOrInvalidField(
        f'Unknown config key "{key}"; expected one of: {", ".join(SCHEMA_FIELDS)}',
        path=path, key=key,
    )


@dataclass(frozen=True)
class PersistedConfig:
    """Typed view of the four schema fields of the config file."""

    web_port: int = DEFAULT_WEB_PORT
    socket_port: int = DEFAULT_SOCKET_PORT
    keys: tuple[str, ...] = DEFAULT_KEYS
    reset: str = DEFAULT_RESET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], path: str = "<memory>") -> "PersistedConfig":
        values: dict[str, Any] = {}
        for key in SCHEMA_FIELDS:
            if key not in data:
                raise MissingOrInvalidField(
                    f'Failed to read key "{key}" from config. {_recovery_hint(path)}',
                    path=path, key=key,
                )
            values[key] = _coerce_field(key, data[key], path)
        values["keys"] = tuple(values["keys"])
        return cls(**values)

    def to_text(self) -> str:
        return render_config(self.web_port, self.socket_port, self.keys, self.reset)


def _atomic_write(path: str, text: str) -> None:
    """Write *text* to *path* so readers see either the old or the new file.

    The data goes to a temp file in the same directory, is fsynced, and is
    then renamed over the target. The temp file is removed on failure.
    """
    directory = os.path.dirname(os.path.abspath(path))
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        mode = 0o644
    fd, tmp_path = tempfile.mkstemp(
        prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory,
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(text.encode("utf-8"))
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class ConfigStore:
    """Single owner of the persisted config file."""

    def __init__(self, path: str, data: dict[str, Any], created_default: bool = False) -> None:
        self.path = path
        self._data = data
        self.created_default = created_default
        self._advisory: Optional[str] = None
        if created_default:
            self._advisory = (
                f"The configuration file could not be found. A default configuration "
                f"({path}) will be created.\n\nPlease read the github wiki ({WIKI_URL}) "
                f"to see configuration guides"
            )

    @property
    def name(self) -> str:
        """The config path as given by the caller."""
        return self.path

    # ─── Opening ────────────────────────────────────────────────────

    @classmethod
    def open_or_create(cls, path: str | os.PathLike[str]) -> "ConfigStore":
        """Open the config at *path*, writing the default document if absent.

        Raises ConfigCorrupt if the file is not a UTF-8 JSON object and IoFailure
        if it cannot be created or read.
        """
        path = os.fspath(path)
        created = False
        if not os.path.exists(path):
            cls._write_default(path)
            created = True

        raw = cls._read_bytes(path)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigCorrupt(
                f"Failed to get config! The file is not valid UTF-8. {_recovery_hint(path)} ({e})",
                path=path,
            ) from e
        data = cls._parse(text, path)
        return cls(path, data, created_default=created)

    @staticmethod
    def _write_default(path: str) -> None:
        directory = os.path.dirname(path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            _atomic_write(path, DEFAULT_CONFIG_TEXT)
        except OSError as e:
            _log.error(
                "Failed to create default configuration file: %s", e,
                extra={"context": log_context(path=path)},
            )
            raise IoFailure(
                f"Failed to create default configuration file ({path}): {e}", path=path,
            ) from e
        _log.info("Created default configuration", extra={"context": log_context(path=path)})

    @staticmethod
    def _read_bytes(path: str) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise IoFailure(f"Failed to read config ({path}): {e}", path=path) from e

    @classmethod
    def _read(cls, path: str) -> str:
        try:
            return cls._read_bytes(path).decode("utf-8")
        except UnicodeDecodeError as e:
            raise IoFailure(f"Failed to read config to string ({path}): {e}", path=path) from e

    @staticmethod
    def _parse(text: str, path: str) -> dict[str, Any]:
        try:
            # strict=False: key names are stored exactly as typed, control
            # characters included.
            data = json.loads(text, strict=False)
        except json.JSONDecodeError as e:
            raise ConfigCorrupt(
                f"Failed to get config! {_recovery_hint(path)} ({e})", path=path,
            ) from e
        if not isinstance(data, dict):
            raise ConfigCorrupt(
                f"Failed to get config! Expected a JSON object, got "
                f"{type(data).__name__}. {_recovery_hint(path)}",
                path=path,
            )
        return data

    def take_advisory(self) -> Optional[str]:
        """Return the "default config created" message once, then None."""
        advisory, self._advisory = self._advisory, None
        return advisory

    # ─── Reading ────────────────────────────────────────────────────

    def raw_text(self) -> str:
        """Current on-disk contents. Raises IoFailure if unreadable."""
        return self._read(self.path)

    def read_field(self, key: str) -> Any:
        """Typed value of schema field *key* as parsed at open/replace time."""
        if key in SCHEMA_FIELDS and key not in self._data:
            raise MissingOrInvalidField(
                f'Failed to read key "{key}" from config. {_recovery_hint(self.path)}',
                path=self.path, key=key,
            )
        return _coerce_field(key, self._data.get(key), self.path)

    def read_config(self) -> PersistedConfig:
        """All four schema fields as a PersistedConfig."""
        return PersistedConfig(
            web_port=self.read_field("web_port"),
            socket_port=self.read_field("socket_port"),
            keys=tuple(self.read_field("keys")),
            reset=self.read_field("reset"),
        )

    # ─── Writing ────────────────────────────────────────────────────

    def replace(self, new_text: str) -> None:
        """Atomically replace the file contents with *new_text*.

        The text must parse as a JSON object; nothing is written otherwise.
        On IoFailure the previous file is left untouched.
        """
        data = self._parse(new_text, self.path)
        try:
            _atomic_write(self.path, new_text)
        except OSError as e:
            _log.error(
                "Failed to replace configuration: %s", e,
                extra={"context": log_context(path=self.path)},
            )
            raise IoFailure(f"Failed to write configuration ({self.path}): {e}", path=self.path) from e
        self._data = data
        _log.info(
            "Configuration saved",
            extra={"context": log_context(path=self.path, size=len(new_text))},
        )
