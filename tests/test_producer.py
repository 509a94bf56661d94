"""Tests for the demo status producer thread."""

from __future__ import annotations

import time

import pytest

from keyoverlay_config.errors import ChannelClosed
from keyoverlay_config.events import ConnectionsUpdate, EventBridge
from keyoverlay_config.producer import DemoProducer


def test_next_count_stays_in_bounds():
    producer = DemoProducer(EventBridge(), max_clients=3, seed=1)
    counts = [producer.next_count() for _ in range(200)]
    assert all(0 <= c <= 3 for c in counts)
    assert all(abs(a - b) <= 1 for a, b in zip(counts, counts[1:]))


def test_emits_events_and_closes_bridge():
    bridge = EventBridge()
    producer = DemoProducer(bridge, interval=0.01, seed=7)
    producer.start()
    assert producer.alive

    received = []
    deadline = time.monotonic() + 5
    while len(received) < 3 and time.monotonic() < deadline:
        received.extend(bridge.try_drain())
        time.sleep(0.01)
    producer.stop()

    assert len(received) >= 3
    assert all(isinstance(e, ConnectionsUpdate) for e in received)
    assert not producer.alive
    assert bridge.closed

    # Events sent before stop are still delivered, then the bridge reports closed
    leftover = bridge.try_drain() if not bridge._queue.empty() else []
    assert all(isinstance(e, ConnectionsUpdate) for e in leftover)
    with pytest.raises(ChannelClosed):
        bridge.try_drain()


def test_start_twice_is_noop():
    producer = DemoProducer(EventBridge(), interval=0.01)
    producer.start()
    thread = producer._thread
    producer.start()
    assert producer._thread is thread
    producer.stop()


def test_stops_when_bridge_closed_externally():
    bridge = EventBridge()
    producer = DemoProducer(bridge, interval=0.01)
    producer.start()
    bridge.close()
    deadline = time.monotonic() + 5
    while producer.alive and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not producer.alive
