# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""EventBus — session-owned pub/sub for round and economy notifications.

Two kinds of subscriber are supported:

  - queue subscribers (``subscribe``) receive ``{"type": ..., "data": ...}``
    messages on a bounded ``queue.Queue``, for UIs and bridges that drain
    on their own schedule.  A full queue drops its oldest message so fresh
    events (round starts, victory) are never silently lost.
  - handlers (``add_handler``) are called synchronously on publish, for
    components of the same session that must react within the tick.

Both are removed explicitly (``unsubscribe`` / ``remove_handler``) and
``clear()`` drops every subscriber at once.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable

from loguru import logger

Handler = Callable[[str, dict], None]


class EventBus:
    """Thread-safe pub/sub for pushing events to subscribers."""

    def __init__(self, maxsize: int = 100) -> None:
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[tuple[str | None, queue.Queue]] = []
        self._handlers: dict[str, list[Handler]] = {}

    # -- Queue subscribers ------------------------------------------------------

    def subscribe(self, topic: str | None = None) -> queue.Queue:
        """Subscribe to events.  ``topic=None`` receives every event."""
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        with self._lock:
            self._subscribers.append((topic, q))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [(t, s) for t, s in self._subscribers if s is not q]

    # -- Handlers ---------------------------------------------------------------

    def add_handler(self, topic: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)

    def remove_handler(self, topic: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    # -- Publishing -------------------------------------------------------------

    def publish(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        msg: dict[str, Any] = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            targets = [q for t, q in self._subscribers if t is None or t == event_type]
            handlers = list(self._handlers.get(event_type, ()))
        for q in targets:
            self._put_drop_oldest(q, msg)
        for handler in handlers:
            try:
                handler(event_type, data or {})
            except Exception:
                logger.exception(f"Event handler failed for {event_type}")

    def clear(self) -> None:
        """Drop every subscriber and handler."""
        with self._lock:
            self._subscribers.clear()
            self._handlers.clear()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers) + sum(len(h) for h in self._handlers.values())

    @staticmethod
    def _put_drop_oldest(q: queue.Queue, msg: dict) -> None:
        try:
            q.put_nowait(msg)
        except queue.Full:
            try:
                q.get_nowait()
            except queue.Empty:
                pass
            try:
                q.put_nowait(msg)
            except queue.Full:
                pass


def drain(q: queue.Queue) -> list[dict]:
    """Return every message currently waiting on ``q``."""
    out: list[dict] = []
    while True:
        try:
            out.append(q.get_nowait())
        except queue.Empty:
            return out
