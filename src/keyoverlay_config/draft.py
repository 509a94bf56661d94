"""Editable in-memory mirror of the config's four schema fields.

Port fields keep a scratch string next to the committed value so the
form can hold half-typed input. The scratch text is only parsed on
commit (focus loss or enter); invalid text snaps back to the last valid
port instead of being accepted or zeroed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .logging import get_logger, log_context
from .store import (
    DEFAULT_KEYS, DEFAULT_RESET, DEFAULT_SOCKET_PORT, DEFAULT_WEB_PORT,
    PORT_FIELDS, PersistedConfig, parse_port,
)

if TYPE_CHECKING:
    from .store import ConfigStore

_log = get_logger("keyoverlay-config.draft")


@dataclass
class Draft:
    web_port: int = DEFAULT_WEB_PORT
    socket_port: int = DEFAULT_SOCKET_PORT
    keys: list[str] = field(default_factory=lambda: list(DEFAULT_KEYS))
    reset: str = DEFAULT_RESET

    web_port_str: str = ""
    socket_port_str: str = ""

    def __post_init__(self) -> None:
        if not self.web_port_str:
            self.web_port_str = str(self.web_port)
        if not self.socket_port_str:
            self.socket_port_str = str(self.socket_port)

    @classmethod
    def from_config(cls, config: PersistedConfig) -> "Draft":
        return cls(
            web_port=config.web_port,
            socket_port=config.socket_port,
            keys=list(config.keys),
            reset=config.reset,
        )

    @classmethod
    def from_store(cls, store: "ConfigStore") -> "Draft":
        """Seed a draft from the store. Raises MissingOrInvalidField."""
        return cls.from_config(store.read_config())

    def schema_fields(self) -> PersistedConfig:
        """The four schema values, without the scratch strings."""
        return PersistedConfig(
            web_port=self.web_port,
            socket_port=self.socket_port,
            keys=tuple(self.keys),
            reset=self.reset,
        )

    # ─── Ports ──────────────────────────────────────────────────────

    def set_port_from_text(self, field_name: str, text: str) -> bool:
        """Commit *text* as the new value of a port field.

        Returns True if the text parsed as a port. Either way the scratch
        string ends up as the decimal form of the committed value.
        """
        if field_name not in PORT_FIELDS:
            raise ValueError(f"Not a port field: {field_name!r}")
        port = parse_port(text)
        if port is None:
            _log.warning(
                "Rejected port input", extra={"context": log_context(
                    field=field_name, text_preview=text,
                )},
            )
        else:
            setattr(self, field_name, port)
        setattr(self, f"{field_name}_str", str(getattr(self, field_name)))
        return port is not None

    # ─── Key bindings ───────────────────────────────────────────────

    def add_key(self) -> None:
        self.keys.append("")

    def remove_key(self, index: int) -> None:
        """Remove the binding at *index*. Out-of-range indices are ignored."""
        if 0 <= index < len(self.keys):
            del self.keys[index]

    def set_key(self, index: int, text: str) -> None:
        """Set the binding at *index* verbatim. Out-of-range indices are ignored."""
        if 0 <= index < len(self.keys):
            self.keys[index] = text

    def set_reset(self, text: str) -> None:
        """Set the reset key. An empty string means no reset key."""
        self.reset = text
