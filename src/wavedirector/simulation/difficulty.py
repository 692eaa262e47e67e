# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""HealthScaler and DifficultyState — per-round unit health scaling.

Architecture
------------
HealthScaler turns a round index and a player success signal into the
health multiplier every unit spawned in that round receives.  The curve
has four parts, all configurable through ``HealthSettings``:

  - base growth:  factor = round * (1.4 past round 10, 1.2 past round 5)
                  base   = base_multiplier + (factor - 1) * per_round_increase
  - phase:        1.0 early (< 5), 1.2 mid (< 10), 1.5 late
  - adaptive:     -0.15 (-0.08 after round 8) when success < 0.3
                  +0.2  (+0.3 after round 8)  when success > 0.7
                  0.05 + 0.01 * round          when 0.4 < success < 0.6
                  clamped to [-0.2, 0.4]
  - controller:   the difficulty controller's multiplier, 1.0 when the
                  controller is disabled or absent.  It is read once per
                  round, when the scheduler fixes the round's multiplier;
                  later controller adjustments apply from the next round.

The product is clamped to [base_multiplier, max_multiplier].  Round 0 is
always exactly 1.0 so the tutorial plays identically every session.

DifficultyState is the controller-owned half: the adaptive health
multiplier bounded by a round-band ceiling, plus cached signals
(rankings, progress pressure, kill efficiency) that are refreshed on a
fixed cadence instead of every tick.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from wavedirector.config import HealthSettings

# Adaptive bonus bounds
_MIN_ADAPTIVE_BONUS = -0.2
_MAX_ADAPTIVE_BONUS = 0.4

# Rounds past which the adaptive bonus and base factor change slope
_LATE_ADAPTIVE_ROUND = 8
_MID_FACTOR_ROUND = 5
_LATE_FACTOR_ROUND = 10

# (round upper bound, value) bands for the controller multiplier
_CEILING_BANDS: tuple[tuple[int, float], ...] = ((3, 2.0), (6, 3.0), (9, 6.0), (12, 12.0))
_CEILING_LAST = 15.0
_AGGRESSION_BANDS: tuple[tuple[int, float], ...] = ((3, 0.1), (6, 0.3), (9, 0.5), (12, 1.0))
_AGGRESSION_LAST = 1.8

# Nudges applied after the raw adjustment, scaled by phase aggressiveness
_HIGH_PRESSURE = 0.7
_HIGH_PRESSURE_NUDGE = 0.05
_MID_PRESSURE = 0.5
_MID_PRESSURE_NUDGE = 0.02
_HIGH_KILL_EFFICIENCY = 0.8
_KILL_EFFICIENCY_NUDGE = 0.03


def _band(round_index: int, bands: tuple[tuple[int, float], ...], last: float) -> float:
    for upper, value in bands:
        if round_index < upper:
            return value
    return last


class HealthScaler:
    """Computes the health multiplier for units spawned in a round."""

    def __init__(
        self,
        settings: HealthSettings | None = None,
        controller_multiplier: Callable[[], float | None] | None = None,
    ) -> None:
        self.settings = settings or HealthSettings()
        self._controller_multiplier = controller_multiplier

    def multiplier_for(self, round_index: int, player_success_rate: float = 0.5) -> float:
        """Return the clamped health multiplier for ``round_index``."""
        s = self.settings
        if round_index < 0:
            return s.base_multiplier
        if round_index == 0:
            return 1.0

        base = self.base_multiplier(round_index) * self.phase_multiplier(round_index)
        bonus = self.adaptive_bonus(player_success_rate, round_index)
        result = base * (1.0 + bonus) * self.controller_multiplier()
        return max(s.base_multiplier, min(s.max_multiplier, result))

    def base_multiplier(self, round_index: int) -> float:
        factor = float(round_index)
        if round_index > _LATE_FACTOR_ROUND:
            factor *= 1.4
        elif round_index > _MID_FACTOR_ROUND:
            factor *= 1.2
        return self.settings.base_multiplier + (factor - 1.0) * self.settings.per_round_increase

    def phase_multiplier(self, round_index: int) -> float:
        s = self.settings
        if round_index < s.early_phase_end:
            return s.early_phase_multiplier
        if round_index < s.mid_phase_end:
            return s.mid_phase_multiplier
        return s.late_phase_multiplier

    @staticmethod
    def adaptive_bonus(success_rate: float, round_index: int) -> float:
        late = round_index > _LATE_ADAPTIVE_ROUND
        if success_rate < 0.3:
            bonus = -0.08 if late else -0.15
        elif success_rate > 0.7:
            bonus = 0.3 if late else 0.2
        elif 0.4 < success_rate < 0.6:
            bonus = 0.05 + round_index * 0.01
        else:
            bonus = 0.0
        return max(_MIN_ADAPTIVE_BONUS, min(_MAX_ADAPTIVE_BONUS, bonus))

    def controller_multiplier(self) -> float:
        if self._controller_multiplier is None:
            return 1.0
        value = self._controller_multiplier()
        if value is None or not math.isfinite(value) or value <= 0:
            return 1.0
        return value


@dataclass
class DifficultyState:
    """Controller-owned health multiplier and cached decision signals."""

    health_multiplier: float = 1.0
    min_multiplier: float = 0.4
    max_multiplier: float = 16.0

    progress_pressure: float = 0.5
    kill_efficiency: float = 0.5
    map_difficulty: float = 0.5
    progressive_types: list[int] = field(default_factory=lambda: [1, 2, 3])
    successful_types: list[int] = field(default_factory=lambda: [1, 2, 3])
    has_reliable_data: bool = False
    last_refresh: float = -math.inf

    # -- Health multiplier ------------------------------------------------------

    def ceiling_for(self, round_index: int) -> float:
        """Round-band ceiling, never above the configured maximum."""
        return min(self.max_multiplier, _band(round_index, _CEILING_BANDS, _CEILING_LAST))

    @staticmethod
    def aggressiveness_for(round_index: int) -> float:
        return _band(round_index, _AGGRESSION_BANDS, _AGGRESSION_LAST)

    def apply_adjustment(self, adjustment: float, round_index: int, sensitivity: float) -> float:
        """Move the multiplier by a decided adjustment and return the new value."""
        aggr = self.aggressiveness_for(round_index)
        value = self.health_multiplier + adjustment * sensitivity * aggr

        if self.progress_pressure > _HIGH_PRESSURE:
            value += _HIGH_PRESSURE_NUDGE * aggr
        elif self.progress_pressure > _MID_PRESSURE:
            value += _MID_PRESSURE_NUDGE * aggr

        if self.kill_efficiency > _HIGH_KILL_EFFICIENCY:
            value += _KILL_EFFICIENCY_NUDGE * aggr

        ceiling = max(self.min_multiplier, self.ceiling_for(round_index))
        self.health_multiplier = max(self.min_multiplier, min(ceiling, value))
        logger.debug(
            f"Health multiplier -> {self.health_multiplier:.3f} "
            f"(round {round_index}, adj {adjustment:+.2f}, aggr {aggr})"
        )
        return self.health_multiplier

    def reset_multiplier(self) -> None:
        self.health_multiplier = 1.0

    # -- Cached signals ---------------------------------------------------------

    def needs_refresh(self, now: float, interval: float) -> bool:
        return now - self.last_refresh > interval

    def reset(self) -> None:
        """Back to a fresh-session state; map difficulty is kept."""
        self.reset_multiplier()
        self.progress_pressure = 0.5
        self.kill_efficiency = 0.5
        self.progressive_types = [1, 2, 3]
        self.successful_types = [1, 2, 3]
        self.has_reliable_data = False
        self.last_refresh = -math.inf

    def to_dict(self) -> dict:
        return {
            "health_multiplier": round(self.health_multiplier, 4),
            "ceiling": self.max_multiplier,
            "progress_pressure": round(self.progress_pressure, 4),
            "kill_efficiency": round(self.kill_efficiency, 4),
            "map_difficulty": round(self.map_difficulty, 4),
            "progressive_types": list(self.progressive_types),
        }
