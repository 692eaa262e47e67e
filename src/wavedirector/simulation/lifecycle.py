# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Round lifecycle FSM.

States:

  PREPARING       before the first round (session start or after reset)
  SPAWNING        groups of the current round are still being emitted
  ACTIVE          every group emitted, waiting for live units to clear
  BETWEEN_ROUNDS  round complete; preparation countdown or victory grace
  VICTORY         terminal
  DEFEAT          terminal

Edges are fixed; anything else is refused and logged.  ``reset()`` returns
to the initial state without an edge check.  Transition history is kept as ``(timestamp, from, to)`` tuples up to ``history_limit`` entries.
"""

from __future__ import annotations

import enum
from typing import Callable

from loguru import logger


class RoundLifecycle(str, enum.Enum):
    PREPARING = "preparing"
    SPAWNING = "spawning"
    ACTIVE = "active"
    BETWEEN_ROUNDS = "between_rounds"
    VICTORY = "victory"
    DEFEAT = "defeat"

    @property
    def is_running(self) -> bool:
        """True while a round definition is current."""
        return self in (RoundLifecycle.SPAWNING, RoundLifecycle.ACTIVE)

    @property
    def is_terminal(self) -> bool:
        return self in (RoundLifecycle.VICTORY, RoundLifecycle.DEFEAT)


_EDGES: dict[RoundLifecycle, frozenset[RoundLifecycle]] = {
    RoundLifecycle.PREPARING: frozenset({RoundLifecycle.SPAWNING, RoundLifecycle.DEFEAT}),
    RoundLifecycle.SPAWNING: frozenset({RoundLifecycle.ACTIVE, RoundLifecycle.DEFEAT}),
    RoundLifecycle.ACTIVE: frozenset({RoundLifecycle.BETWEEN_ROUNDS, RoundLifecycle.DEFEAT}),
    RoundLifecycle.BETWEEN_ROUNDS: frozenset({
        RoundLifecycle.SPAWNING, RoundLifecycle.VICTORY, RoundLifecycle.DEFEAT,
    }),
    RoundLifecycle.VICTORY: frozenset(),
    RoundLifecycle.DEFEAT: frozenset(),
}

Listener = Callable[[RoundLifecycle, RoundLifecycle], None]


class RoundStateMachine:
    """Tracks the scheduler's lifecycle state and its transition history."""

    def __init__(
        self,
        initial: RoundLifecycle = RoundLifecycle.PREPARING,
        history_limit: int = 50,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._initial = initial
        self._state = initial
        self._history_limit = history_limit
        self._history: list[tuple[float, str, str]] = []
        self._clock = clock or (lambda: 0.0)
        self._entered_at = self._clock()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> RoundLifecycle:
        return self._state

    @property
    def time_in_state(self) -> float:
        return self._clock() - self._entered_at

    @property
    def history(self) -> list[tuple[float, str, str]]:
        """Copy of transition history: [(timestamp, from_state, to_state), ...]."""
        return list(self._history)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def can_transition(self, target: RoundLifecycle) -> bool:
        return target in _EDGES[self._state]

    def transition(self, target: RoundLifecycle) -> bool:
        """Move to ``target`` if the edge exists.  Returns False otherwise."""
        if not self.can_transition(target):
            logger.warning(f"Refused lifecycle transition {self._state.value} -> {target.value}")
            return False
        self._set(target)
        return True

    def reset(self) -> None:
        self._history.clear()
        self._state = self._initial
        self._entered_at = self._clock()

    # -- Internal ---------------------------------------------------------------

    def _set(self, target: RoundLifecycle) -> None:
        previous = self._state
        self._state = target
        self._entered_at = self._clock()
        self._record_history(previous, target)
        for listener in list(self._listeners):
            listener(previous, target)

    def _record_history(self, previous: RoundLifecycle, target: RoundLifecycle) -> None:
        self._history.append((self._entered_at, previous.value, target.value))
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]
