"""Status events from the keyoverlay daemon and the bridge that carries them.

The daemon (or the demo producer) runs on its own thread and pushes
StatusEvents into an EventBridge. The editor drains the bridge once per
UI tick with try_drain(), which never blocks.

Capacity policy: the bridge is bounded. When it is full, send() blocks
the producer until the editor drains; events are never dropped. A send
that passed the closed check before close() is still delivered before
try_drain() reports the bridge closed.

Wire format, for producers that speak JSON:

    {"type": "connections", "count": 3}     # ConnectionsUpdate(3)
    {"type": "anything-else", ...}          # UnknownEvent, ignored by consumers
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .errors import ChannelClosed
from .logging import get_logger, log_context

_log = get_logger("keyoverlay-config.events")

DEFAULT_CAPACITY = 1024


@dataclass(frozen=True)
class StatusEvent:
    """Base class for events sent by the daemon."""


@dataclass(frozen=True)
class ConnectionsUpdate(StatusEvent):
    """Number of overlay clients currently connected to the daemon."""

    count: int


@dataclass(frozen=True)
class UnknownEvent(StatusEvent):
    """An event kind this editor does not understand (newer daemon)."""

    kind: str
    payload: Mapping[str, Any] = field(default_factory=dict, compare=False)


def parse_event(payload: Mapping[str, Any]) -> StatusEvent:
    """Decode a JSON-style event dict. Never raises for unknown kinds."""
    kind = str(payload.get("type", ""))
    if kind == "connections":
        count = payload.get("count")
        if isinstance(count, int) and not isinstance(count, bool) and count >= 0:
            return ConnectionsUpdate(count)
        _log.debug("Malformed connections event", extra={"context": log_context(payload=dict(payload))})
    return UnknownEvent(kind, dict(payload))


class EventBridge:
    """Bounded one-way channel from a producer thread to the UI tick."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._queue: queue.Queue[StatusEvent] = queue.Queue(maxsize=capacity)
        self._lock = threading.Lock()
        self._closed = False
        self._sending = 0

    # ─── Producer side ──────────────────────────────────────────────

    def send(self, event: StatusEvent, timeout: Optional[float] = None) -> None:
        """Enqueue *event*, blocking while the bridge is full.

        Raises ChannelClosed after close(), and queue.Full if *timeout*
        expires first.
        """
        with self._lock:
            if self._closed:
                raise ChannelClosed("Event bridge is closed")
            self._sending += 1
        try:
            self._queue.put(event, timeout=timeout)
        finally:
            with self._lock:
                self._sending -= 1

    def close(self) -> None:
        """Mark the producer as gone. Buffered events are still delivered."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        _log.info("Event bridge closed by producer")

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # ─── Consumer side ──────────────────────────────────────────────

    def try_drain(self) -> list[StatusEvent]:
        """Return every buffered event in emission order, without blocking.

        Raises ChannelClosed once the producer has closed and nothing is
        left to deliver.
        """
        # Snapshot before draining: once closed with no send in flight,
        # every accepted event is already in the queue.
        with self._lock:
            finished = self._closed and self._sending == 0
        events: list[StatusEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                break
        if finished and not events:
            raise ChannelClosed("Daemon disconnected")
        return events


@dataclass
class DaemonStatus:
    """Last known daemon state as shown in the editor."""

    client_count: int = 0
    connected: bool = True

    def apply(self, event: StatusEvent) -> bool:
        """Fold *event* into the status. Returns True if anything changed."""
        if isinstance(event, ConnectionsUpdate):
            changed = event.count != self.client_count
            self.client_count = event.count
            return changed
        _log.debug("Ignoring status event", extra={"context": log_context(event=repr(event))})
        return False

    def mark_disconnected(self) -> None:
        self.connected = False

    def describe(self) -> str:
        if not self.connected:
            return "Daemon disconnected"
        return f"Connected clients: {self.client_count}"
