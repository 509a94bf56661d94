"""Canonical JSON synthesis and the dirty / restart-required state machine.

    Clean --edit--> Dirty --commit--> Clean+RestartRequired --edit--> Dirty+RestartRequired ...

restart_required never goes back to False: the daemon only reads its
config at startup, so a saved change stays pending until it restarts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import IoFailure
from .logging import get_logger, log_context
from .store import render_config

if TYPE_CHECKING:
    from .draft import Draft
    from .store import ConfigStore

_log = get_logger("keyoverlay-config.reconcile")


def rebuild_canonical(draft: "Draft") -> str:
    """Render *draft* as the exact text that Save would write."""
    return render_config(draft.web_port, draft.socket_port, draft.keys, draft.reset)


def is_dirty(canonical: str, store: "ConfigStore") -> bool:
    """True if *canonical* differs from the file on disk.

    An unreadable file counts as dirty so it can always be overwritten.
    """
    try:
        return canonical != store.raw_text()
    except IoFailure as e:
        _log.warning(
            "Config unreadable, allowing overwrite: %s", e.message,
            extra={"context": log_context(path=store.path)},
        )
        return True


class Reconciler:
    """Gates Save against the store and tracks whether a restart is needed."""

    def __init__(self, store: "ConfigStore") -> None:
        self.store = store
        self._restart_required = False

    @property
    def restart_required(self) -> bool:
        return self._restart_required

    def is_dirty(self, canonical: str) -> bool:
        return is_dirty(canonical, self.store)

    def commit(self, canonical: str) -> bool:
        """Write *canonical* to disk if it differs from the file.

        Only call this in response to an explicit Save. Returns the
        restart-required flag. IoFailure from the store propagates and
        leaves the flag unchanged.
        """
        if not self.is_dirty(canonical):
            _log.debug("Commit skipped, config unchanged")
            return self._restart_required
        self.store.replace(canonical)
        self._restart_required = True
        return self._restart_required
