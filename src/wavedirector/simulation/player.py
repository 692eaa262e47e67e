# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Player lives."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from wavedirector.comms.event_bus import EventBus


class PlayerState:
    """Lives counter.  Publishes ``lives_changed`` and, at zero, ``player_defeated``."""

    def __init__(self, event_bus: EventBus | None = None, starting_lives: int = 5) -> None:
        self._event_bus = event_bus
        self._max_lives = starting_lives
        self._lives = starting_lives

    def current_lives(self) -> int:
        return self._lives

    def max_lives(self) -> int:
        return self._max_lives

    @property
    def health_fraction(self) -> float:
        return self._lives / self._max_lives if self._max_lives > 0 else 0.0

    @property
    def is_defeated(self) -> bool:
        return self._lives <= 0

    def take_damage(self, amount: int = 1, reason: str = "unit_reached_end") -> None:
        if amount <= 0 or self.is_defeated:
            return
        self._lives = max(0, self._lives - amount)
        logger.info(f"Player lost {amount} life ({reason}), {self._lives}/{self._max_lives} left")
        self._publish("lives_changed", {"lives": self._lives, "max_lives": self._max_lives, "reason": reason})
        if self._lives == 0:
            self._publish("player_defeated", {"reason": reason})

    def reset(self) -> None:
        self._lives = self._max_lives
        self._publish("lives_changed", {"lives": self._lives, "max_lives": self._max_lives, "reason": "reset"})

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
