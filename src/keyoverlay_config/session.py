"""Editor session: the draft, the reconciler and the daemon status together.

The TUI holds one EditorSession and talks to the config only through it.
Each edit method mutates the draft and rebuilds the canonical JSON at most
once; tick() drains the event bridge and is called once per UI frame.
"""

from __future__ import annotations

import os
from typing import Optional

from .draft import Draft
from .errors import ChannelClosed, IoFailure
from .events import DaemonStatus, EventBridge, StatusEvent
from .logging import get_logger, log_context
from .reconcile import Reconciler, rebuild_canonical
from .store import ConfigStore

_log = get_logger("keyoverlay-config.session")


class EditorSession:
    """One editing session over a single config file."""

    def __init__(self, store: ConfigStore, bridge: Optional[EventBridge] = None) -> None:
        self.store = store
        self.bridge = bridge
        self.draft = Draft.from_store(store)
        self.reconciler = Reconciler(store)
        self.status = DaemonStatus()
        self.canonical = rebuild_canonical(self.draft)
        self.revision = 0
        """Incremented on every rebuild; lets the renderer skip redraws."""

    @classmethod
    def open(cls, path: str | os.PathLike[str], bridge: Optional[EventBridge] = None) -> "EditorSession":
        """Open (or create) the config at *path* and seed a draft from it.

        Raises ConfigCorrupt, MissingOrInvalidField or IoFailure.
        """
        return cls(ConfigStore.open_or_create(path), bridge)

    def _rebuild(self, reason: str) -> None:
        self.canonical = rebuild_canonical(self.draft)
        self.revision += 1
        _log.debug("Rebuilt canonical config", extra={"context": log_context(
            reason=reason, revision=self.revision,
        )})

    # ─── Edits ──────────────────────────────────────────────────────

    def commit_port(self, field_name: str, text: str) -> bool:
        """Commit port scratch text. Returns False if the text was rejected.

        Only a change of the port value rebuilds the canonical JSON.
        """
        before = getattr(self.draft, field_name, None)
        accepted = self.draft.set_port_from_text(field_name, text)
        if getattr(self.draft, field_name) != before:
            self._rebuild(field_name)
        return accepted

    def add_key(self) -> None:
        self.draft.add_key()
        self._rebuild("add_key")

    def remove_key(self, index: int) -> None:
        self.draft.remove_key(index)
        self._rebuild("remove_key")

    def set_key(self, index: int, text: str) -> None:
        self.draft.set_key(index, text)
        self._rebuild("set_key")

    def set_reset(self, text: str) -> None:
        self.draft.set_reset(text)
        self._rebuild("set_reset")

    # ─── Save state ─────────────────────────────────────────────────

    @property
    def dirty(self) -> bool:
        return self.reconciler.is_dirty(self.canonical)

    @property
    def restart_required(self) -> bool:
        return self.reconciler.restart_required

    def save(self) -> bool:
        """Write the canonical JSON if it differs from disk.

        Returns the restart-required flag. IoFailure propagates; the
        session stays dirty so the operator can retry.
        """
        return self.reconciler.commit(self.canonical)

    def persisted_text(self) -> Optional[str]:
        """The on-disk text for display, or None while it is unreadable."""
        try:
            return self.store.raw_text()
        except IoFailure:
            return None

    def web_url(self, host: str = "127.0.0.1") -> str:
        """URL of the daemon's web overlay, using the saved web port."""
        return f"http://{host}:{self.store.read_field('web_port')}"

    # ─── Daemon status ──────────────────────────────────────────────

    def tick(self) -> list[StatusEvent]:
        """Drain pending status events and fold them into self.status."""
        if self.bridge is None or not self.status.connected:
            return []
        try:
            events = self.bridge.try_drain()
        except ChannelClosed:
            self.status.mark_disconnected()
            _log.warning("Daemon disconnected")
            return []
        for event in events:
            self.status.apply(event)
        return events
