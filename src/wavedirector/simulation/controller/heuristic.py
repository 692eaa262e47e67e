# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""HeuristicStrategy — rule-based round decisions.

Always available.  It is the default strategy and the fallback for the
learned policy, so a session never depends on an external model.

Proportions follow tracker effectiveness (each type floored at 0.1)
with the most progressive type boosted after round 5.  Density and
speed rise linearly over the session; density backs off on hard maps
and climbs with player pressure.  The health adjustment comes from a
round-band table keyed on how far units are getting.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from .base import ActionVector
from .observation import ObservationBuilder
from .reward import compute_reward

if TYPE_CHECKING:
    from .observation import ControllerSignals

_MIN_EFFECTIVENESS = 0.1
_PHASE_SPAN = 14.0

# (round upper bound, (above 0.6, above 0.4, otherwise)) health adjustment bands
_HEALTH_BANDS: tuple[tuple[int, tuple[float, float, float]], ...] = (
    (3, (0.1, 0.05, 0.05)),
    (6, (0.2, 0.1, 0.05)),
    (9, (0.4, 0.2, 0.1)),
)
_HEALTH_LAST = (0.7, 0.4, 0.2)


def _lerp(a: float, b: float, t: float) -> float:
    t = max(0.0, min(1.0, t))
    return a + (b - a) * t


def health_adjustment_for(round_index: int, progress_pressure: float) -> float:
    """Health adjustment for a round, higher when units get further."""
    values = _HEALTH_LAST
    for upper, band in _HEALTH_BANDS:
        if round_index < upper:
            values = band
            break
    if progress_pressure > 0.6:
        return values[0]
    if progress_pressure > 0.4:
        return values[1]
    return values[2]


class HeuristicStrategy:
    """Rule-based controller strategy."""

    name = "heuristic"

    def __init__(self, signals: ControllerSignals, speed_norm: float = 5.0) -> None:
        self.signals = signals
        self.observer = ObservationBuilder(signals, speed_norm=speed_norm)
        self.total_reward = 0.0

    def observe(self, round_index: int) -> np.ndarray:
        return self.observer.build(round_index)

    def decide(self, observation: np.ndarray, round_index: int) -> ActionVector:
        s = self.signals
        if not s.ready:
            return ActionVector.default()

        state = s.state
        return ActionVector(
            proportions=self._proportions(round_index),
            density=self._density(round_index),
            speed=self._speed(round_index),
            health_adjustment=health_adjustment_for(round_index, state.progress_pressure),
        )

    def evaluate(
        self,
        round_index: int,
        units_reached_end: int,
        total_units: int,
        player_health_percent: float,
    ) -> float:
        success = units_reached_end / total_units if total_units > 0 else 0.0
        value = compute_reward(success, player_health_percent, total_units, round_index)
        self.reward(value)
        return value

    def reward(self, value: float) -> None:
        self.total_reward += value

    def reset(self) -> None:
        self.total_reward = 0.0

    # -- Internal ---------------------------------------------------------------

    def _proportions(self, round_index: int) -> tuple[float, float, float]:
        s = self.signals
        scores = [max(_MIN_EFFECTIVENESS, s.effectiveness(t)) for t in (1, 2, 3)]
        total = sum(scores)
        props = [v / total for v in scores]

        progressive = s.state.progressive_types
        if progressive and round_index > 5:
            index = progressive[0] - 1
            if 0 <= index < 3:
                props[index] *= min(1.0 + round_index * 0.03, 1.5)

        total = sum(props)
        return (props[0] / total, props[1] / total, props[2] / total)

    def _density(self, round_index: int) -> float:
        s = self.signals
        base = _lerp(0.4, 0.7, round_index / _PHASE_SPAN)
        value = base + s.player_pressure() * 0.2 - s.map_adaptation() * 0.1
        return max(0.3, min(0.8, value))

    def _speed(self, round_index: int) -> float:
        base = _lerp(0.4, 0.7, round_index / _PHASE_SPAN)
        if self.signals.map_adaptation() > 0.6:
            base += 0.1
        return max(0.4, min(0.8, base))
