"""In-process pub/sub bus for page store change events."""

from __future__ import annotations

import queue
import threading
from typing import Any


class ChangeBus:
    """Thread-safe queue fan-out.

    Unbounded subscribers see every published event; bounded ones keep only
    the oldest pending events up to their size.
    """

    def __init__(self) -> None:
        self._queues: list[queue.Queue[dict[str, Any]]] = []
        self._lock = threading.RLock()

    def subscribe(self, maxsize: int = 0) -> queue.Queue[dict[str, Any]]:
        """Register a queue; a bounded queue drops events once it is full."""

        q: queue.Queue[dict[str, Any]] = queue.Queue(maxsize=maxsize)
        with self._lock:
            self._queues.append(q)
        return q

    def publish(self, event: dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._queues)
        for q in targets:
            try:
                q.put_nowait(dict(event))
            except queue.Full:
                continue

    def unsubscribe(self, queue_ref: queue.Queue[dict[str, Any]]) -> None:
        """Remove ``queue_ref`` when a subscriber goes away."""

        with self._lock:
            self._queues = [q for q in self._queues if q is not queue_ref]

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._queues)


def drain(q: queue.Queue[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pop every pending event from ``q`` without blocking."""

    events: list[dict[str, Any]] = []
    while True:
        try:
            events.append(q.get_nowait())
        except queue.Empty:
            return events


__all__ = ["ChangeBus", "drain"]
