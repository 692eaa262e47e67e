# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Controller strategy interface and the action vector.

A strategy turns an observation of the session into an ``ActionVector``
of six floats in fixed order::

    [p_a, p_b, p_c, density, speed, health_adjustment]

The first three are raw (un-normalized) unit-type proportions for types
1..3, density and speed are in [0, 1], and the health adjustment is in
[-1, 1].  A strategy may leave the health adjustment out (``None``), in
which case the health multiplier is left alone for that round.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

import numpy as np

OBSERVATION_SIZE = 29
ACTION_SIZE = 6

# Used when a strategy has nothing to go on
DEFAULT_PROPORTIONS = (0.33, 0.33, 0.34)
DEFAULT_DENSITY = 0.6
DEFAULT_SPEED = 0.5


def _clamp(value: float, low: float, high: float) -> float:
    if not np.isfinite(value):
        return low
    return max(low, min(high, float(value)))


@dataclass(frozen=True)
class ActionVector:
    """One controller decision."""

    proportions: tuple[float, float, float] = DEFAULT_PROPORTIONS
    density: float = DEFAULT_DENSITY
    speed: float = DEFAULT_SPEED
    health_adjustment: float | None = None

    @classmethod
    def from_array(cls, values: Sequence[float] | np.ndarray) -> "ActionVector":
        """Clamp raw policy output into a valid action.  Short input keeps defaults."""
        raw = [float(v) for v in np.asarray(values, dtype=np.float64).ravel()]
        proportions = list(DEFAULT_PROPORTIONS)
        for i in range(min(3, len(raw))):
            proportions[i] = _clamp(raw[i], 0.0, 1.0)
        density = _clamp(raw[3], 0.0, 1.0) if len(raw) > 3 else DEFAULT_DENSITY
        speed = _clamp(raw[4], 0.0, 1.0) if len(raw) > 4 else DEFAULT_SPEED
        health = _clamp(raw[5], -1.0, 1.0) if len(raw) > 5 else None
        return cls(tuple(proportions), density, speed, health)  # type: ignore[arg-type]

    @classmethod
    def default(cls) -> "ActionVector":
        return cls()

    def to_array(self) -> np.ndarray:
        health = 0.0 if self.health_adjustment is None else self.health_adjustment
        return np.array([*self.proportions, self.density, self.speed, health], dtype=np.float32)

    def normalized_proportions(self) -> list[float]:
        total = sum(self.proportions)
        if total <= 0:
            return [1.0 / 3] * 3
        return [p / total for p in self.proportions]


@runtime_checkable
class ControllerStrategy(Protocol):
    """Decision strategy used by the difficulty controller."""

    name: str

    def observe(self, round_index: int) -> np.ndarray:
        """Observation vector of ``OBSERVATION_SIZE`` float32 values."""
        ...

    def decide(self, observation: np.ndarray, round_index: int) -> ActionVector:
        ...

    def evaluate(
        self,
        round_index: int,
        units_reached_end: int,
        total_units: int,
        player_health_percent: float,
    ) -> float:
        """Score a finished round and return the reward."""
        ...

    def reward(self, value: float) -> None:
        """Credit a bookkeeping reward (successful or failed generation)."""
        ...
