# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""SimClock and TimerQueue — suspended work as data, driven by the tick loop.

Nothing in the round pipeline sleeps.  Every wait (preparation countdown,
group delays, spawn intervals, controller decision latency, passive
income ticks, the victory grace period) is a ``_Timer`` on a heap ordered
by ``(deadline, seq)``.  The session advances the clock once per tick and
calls ``run_due()``, which fires every timer whose deadline has passed in
deadline order; equal deadlines fire in scheduling order.

``cancel_all()`` drops every pending continuation at once, which is what a
session reset relies on.
"""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

# Guard against a callback that keeps re-arming itself with zero delay
_MAX_FIRES_PER_RUN = 10_000


class SimClock:
    """Monotonic simulation clock advanced by the tick loop."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._start = start
        self.paused = False

    @property
    def now(self) -> float:
        return self._now

    def advance(self, dt: float) -> float:
        """Move time forward by ``dt`` unless paused.  Returns the applied delta."""
        if self.paused or dt <= 0:
            return 0.0
        self._now += dt
        return dt

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def reset(self) -> None:
        self._now = self._start
        self.paused = False


@dataclass(order=True)
class _Timer:
    """A pending continuation.  Lower deadline fires first."""

    deadline: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    name: str = field(compare=False, default="")
    cancelled: bool = field(compare=False, default=False)


class TimerHandle:
    """Cancellable reference to a scheduled timer."""

    __slots__ = ("_timer",)

    def __init__(self, timer: _Timer) -> None:
        self._timer = timer

    @property
    def name(self) -> str:
        return self._timer.name

    @property
    def deadline(self) -> float:
        return self._timer.deadline

    @property
    def active(self) -> bool:
        return not self._timer.cancelled

    def cancel(self) -> None:
        self._timer.cancelled = True


class TimerQueue:
    """Heap of ``(deadline, seq, callback)`` continuations."""

    def __init__(self, clock: SimClock) -> None:
        self.clock = clock
        self._heap: list[_Timer] = []
        self._seq = itertools.count()
        self._firing_at: float | None = None

    def __len__(self) -> int:
        return sum(1 for t in self._heap if not t.cancelled)

    @property
    def base_time(self) -> float:
        """Time new timers are relative to.

        Inside a firing callback this is the fired timer's deadline, so
        chained waits keep their cadence when one tick spans several of them.
        """
        return self._firing_at if self._firing_at is not None else self.clock.now

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        timer = _Timer(
            deadline=self.base_time + max(0.0, delay),
            seq=next(self._seq),
            callback=callback,
            name=name,
        )
        heapq.heappush(self._heap, timer)
        return TimerHandle(timer)

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed.  Returns the number fired."""
        fired = 0
        now = self.clock.now
        while self._heap and self._heap[0].deadline <= now:
            timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            timer.cancelled = True
            self._firing_at = timer.deadline
            try:
                timer.callback()
            finally:
                self._firing_at = None
            fired += 1
            if fired >= _MAX_FIRES_PER_RUN:
                logger.warning(f"TimerQueue fired {fired} timers in one pass, deferring the rest")
                break
        return fired

    def pending(self, name: str | None = None) -> list[TimerHandle]:
        return [
            TimerHandle(t) for t in sorted(self._heap)
            if not t.cancelled and (name is None or t.name == name)
        ]

    def cancel_all(self) -> int:
        """Cancel every pending timer.  Returns how many were live."""
        live = 0
        for timer in self._heap:
            if not timer.cancelled:
                timer.cancelled = True
                live += 1
        self._heap.clear()
        return live
