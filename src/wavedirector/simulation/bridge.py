# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""RoundInjectionBridge — asynchronous handoff from controller to scheduler.

The scheduler asks for a round with ``request_for_round``, which returns
immediately.  The decision runs after ``decision_latency`` seconds on
the timer queue and its result arrives through ``deliver``.  Deliveries
are buffered by round index:

  - a delivery for the round the scheduler is currently preparing is
    installed straight away through the attached installer
  - a delivery for a later round waits in the buffer
  - a delivery for a round that already started is discarded
  - a request that never resolves leaves nothing behind and the
    scheduler falls back to its deterministic round

``clear()`` cancels outstanding requests and empties the buffer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Mapping

from loguru import logger

from .errors import MalformedRoundError
from .rounds import RoundDefinition

if TYPE_CHECKING:
    from wavedirector.comms.event_bus import EventBus

    from .controller.director import DifficultyController
    from .timers import TimerHandle, TimerQueue


class RoundInjectionBridge:
    """Buffers controller output until the scheduler consumes it."""

    def __init__(
        self,
        timers: TimerQueue,
        controller: DifficultyController | None = None,
        decision_latency: float = 0.5,
        event_bus: EventBus | None = None,
    ) -> None:
        self._timers = timers
        self.controller = controller
        self.decision_latency = decision_latency
        self._event_bus = event_bus
        self._pending: dict[int, RoundDefinition] = {}
        self._requests: dict[int, TimerHandle] = {}
        self._preparation_target: Callable[[], int | None] = lambda: None
        self._current_round: Callable[[], int] = lambda: -1
        self._installer: Callable[[int, RoundDefinition], None] | None = None
        self.discarded = 0

    def attach(
        self,
        preparation_target: Callable[[], int | None],
        current_round: Callable[[], int],
        installer: Callable[[int, RoundDefinition], None],
    ) -> None:
        """Wire the scheduler's view of which round is next."""
        self._preparation_target = preparation_target
        self._current_round = current_round
        self._installer = installer

    # -- Requests ---------------------------------------------------------------

    def request_for_round(self, round_index: int) -> bool:
        """Ask the controller for ``round_index``.  Returns False if nothing was scheduled."""
        if self.controller is None:
            logger.debug(f"No controller attached, round {round_index} will use the fallback")
            return False
        if not self.controller.handles(round_index):
            return False
        if round_index in self._pending or round_index in self._requests:
            return False
        self._requests[round_index] = self._timers.call_later(
            self.decision_latency,
            lambda: self._resolve(round_index),
            name=f"decision:{round_index}",
        )
        logger.debug(f"Requested controller round {round_index}")
        return True

    def is_requested(self, round_index: int) -> bool:
        return round_index in self._requests

    # -- Deliveries -------------------------------------------------------------

    def deliver(self, round_index: int, payload: RoundDefinition | Mapping[str, Any] | None) -> bool:
        """Accept a composed round.  Returns True when it was kept."""
        try:
            definition = RoundDefinition.coerce(payload)
        except MalformedRoundError as exc:
            logger.warning(f"Dropping malformed delivery for round {round_index}: {exc}")
            self.discarded += 1
            return False

        if round_index <= self._current_round():
            logger.debug(f"Discarding late delivery for round {round_index}, already started")
            self.discarded += 1
            return False

        self._publish("round_delivered", {"round_index": round_index, "total_units": definition.total_units})
        if round_index == self._preparation_target() and self._installer is not None:
            self._installer(round_index, definition)
            return True
        self._pending[round_index] = definition
        return True

    def consume_if_pending(self, round_index: int) -> RoundDefinition | None:
        return self._pending.pop(round_index, None)

    def has_pending(self, round_index: int) -> bool:
        return round_index in self._pending

    # -- Lifecycle --------------------------------------------------------------

    def clear(self) -> None:
        for handle in self._requests.values():
            handle.cancel()
        self._requests.clear()
        self._pending.clear()
        self.discarded = 0

    def reset(self) -> None:
        self.clear()

    # -- Internal ---------------------------------------------------------------

    def _resolve(self, round_index: int) -> None:
        self._requests.pop(round_index, None)
        definition = self.controller.generate(round_index) if self.controller is not None else None
        if definition is None:
            logger.debug(f"Controller produced nothing for round {round_index}")
            return
        self.deliver(round_index, definition)

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
