"""Demo status producer for running the editor without a real daemon.

Emits ConnectionsUpdate events into an EventBridge from a background
thread, the way the keyoverlay daemon does when overlay clients come and
go. Closing the producer closes the bridge, so the editor shows
"Daemon disconnected".

Usage:
    from keyoverlay_config.producer import DemoProducer

    bridge = EventBridge()
    producer = DemoProducer(bridge, interval=2.0)
    producer.start()  # background thread
    # ... later ...
    producer.stop()
"""

from __future__ import annotations

import queue
import random
import threading
from typing import Optional

from .errors import ChannelClosed
from .events import ConnectionsUpdate, EventBridge
from .logging import get_logger

_log = get_logger("keyoverlay-config.producer")


class DemoProducer:
    """Background thread that simulates overlay clients connecting.

    Args:
        bridge: Bridge to send events into.
        interval: Mean seconds between events.
        max_clients: Upper bound for the simulated client count.
        seed: Optional random seed for reproducible runs.
    """

    def __init__(
        self,
        bridge: EventBridge,
        interval: float = 2.0,
        max_clients: int = 8,
        seed: Optional[int] = None,
    ):
        self.bridge = bridge
        self.interval = interval
        self.max_clients = max_clients
        self._rng = random.Random(seed)
        self._count = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start emitting events in a background daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="demo-producer"
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the thread and close the bridge."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self.bridge.close()

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def next_count(self) -> int:
        """Random-walk the client count by one step within [0, max_clients]."""
        step = self._rng.choice((-1, 1))
        self._count = min(self.max_clients, max(0, self._count + step))
        return self._count

    def _run(self) -> None:
        _log.info("Demo producer started")
        while not self._stop.is_set():
            try:
                self.bridge.send(ConnectionsUpdate(self.next_count()), timeout=1.0)
            except ChannelClosed:
                break
            except queue.Full:
                _log.debug("Bridge full, editor not draining")
            self._stop.wait(self._rng.uniform(0.5, 1.5) * self.interval)
        _log.info("Demo producer stopped")
