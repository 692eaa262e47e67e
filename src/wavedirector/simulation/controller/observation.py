# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Controller signals and the observation vector.

Architecture
------------
``ControllerSignals`` gathers everything the strategies read from the
session: player health and funds, tracker statistics, path shape and
the shared ``DifficultyState``.  Any collaborator may be missing; each
signal then falls back to a neutral 0.5 rather than raising.

Rankings, progress pressure and kill efficiency are cached on the
``DifficultyState`` and refreshed at most every ``refresh_interval``
seconds (``refresh()``); map difficulty is computed once per path.

Observation layout (29 float32 values):

  0      round index / total rounds
  1      player health fraction
  2      funds fraction
  3      global unit success rate
  4-15   per type 1..3: weighted progress, avg max node / last node,
         success rate, avg speed / speed norm      (zeros if unseen)
  16-18  top three progressive types / 3
  19     map difficulty
  20     health multiplier / max multiplier
  21     progress pressure
  22     kill efficiency
  23-28  per type 1..3: weighted progress, avg max node / last node
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import numpy as np

from wavedirector.simulation.path import map_adaptation, map_difficulty

from .base import OBSERVATION_SIZE

if TYPE_CHECKING:
    from wavedirector.simulation.difficulty import DifficultyState
    from wavedirector.simulation.interfaces import EconomyReader, PathTopology, PlayerStateReader
    from wavedirector.simulation.stats import PerformanceTracker

_NEUTRAL = 0.5


class ControllerSignals:
    """Read-only view of the session for controller strategies."""

    def __init__(
        self,
        state: DifficultyState,
        tracker: PerformanceTracker | None = None,
        player: PlayerStateReader | None = None,
        economy: EconomyReader | None = None,
        path: PathTopology | None = None,
        clock: Callable[[], float] | None = None,
        money_scale: float = 1000.0,
        refresh_interval: float = 3.0,
        controllable_types: int = 3,
        total_rounds: int = 15,
    ) -> None:
        self.state = state
        self.tracker = tracker
        self.player = player
        self.economy = economy
        self.path = path
        self._clock = clock or (lambda: 0.0)
        self.money_scale = money_scale
        self.refresh_interval = refresh_interval
        self.controllable_types = controllable_types
        self.total_rounds = total_rounds
        self.state.map_difficulty = self._compute_map_difficulty()

    @property
    def ready(self) -> bool:
        """True when every collaborator is present."""
        return None not in (self.tracker, self.player, self.economy, self.path)

    # -- Player -----------------------------------------------------------------

    def player_health(self) -> float:
        if self.player is None or self.player.max_lives() <= 0:
            return _NEUTRAL
        return self.player.current_lives() / self.player.max_lives()

    def money_fraction(self) -> float:
        if self.economy is None:
            return _NEUTRAL
        return min(1.0, max(0.0, self.economy.current_funds() / self.money_scale))

    def player_pressure(self) -> float:
        return 0.7 * (1.0 - self.player_health()) + 0.3 * (1.0 - self.money_fraction())

    # -- Tracker ----------------------------------------------------------------

    def progress_pressure(self) -> float:
        """Mean of 0.7 * weighted + 0.3 * recent progress over reliable types."""
        if self.tracker is None:
            return _NEUTRAL
        scores = [
            0.7 * r.weighted_progress_rate + 0.3 * r.recent_weighted_progress
            for r in self.tracker.records
            if r.analysis_samples >= self.tracker.reliability_floor
        ]
        return sum(scores) / len(scores) if scores else _NEUTRAL

    def kill_efficiency(self) -> float:
        if self.tracker is None:
            return _NEUTRAL
        spawned = self.tracker.total_spawned()
        if spawned <= 0:
            return _NEUTRAL
        return (spawned - self.tracker.total_reached_end()) / spawned

    def fastest_types(self, count: int = 1) -> list[int]:
        if self.tracker is None:
            return [2, 1, 3][:count]
        return self.tracker.fastest(count)

    def effectiveness(self, unit_type: int) -> float:
        if self.tracker is None:
            return _NEUTRAL
        return self.tracker.effectiveness_for(unit_type)

    # -- Path -------------------------------------------------------------------

    @property
    def last_node_index(self) -> int:
        if self.path is None:
            return 0
        return self.path.last_node_index

    def map_adaptation(self) -> float:
        return map_adaptation(self.state.map_difficulty, self.last_node_index)

    def _compute_map_difficulty(self) -> float:
        if self.path is None:
            return _NEUTRAL
        return map_difficulty(self.path.node_positions)

    # -- Cache ------------------------------------------------------------------

    def refresh(self, force: bool = False) -> bool:
        """Refresh cached signals on the difficulty state when stale."""
        now = self._clock()
        if not force and not self.state.needs_refresh(now, self.refresh_interval):
            return False
        state = self.state
        state.progress_pressure = self.progress_pressure()
        state.kill_efficiency = self.kill_efficiency()
        if self.tracker is not None:
            state.progressive_types = self.tracker.most_progressive(self.controllable_types)
            state.successful_types = self.tracker.most_successful(self.controllable_types)
            state.has_reliable_data = self.tracker.has_reliable_data()
        else:
            state.progressive_types = list(range(1, self.controllable_types + 1))
            state.successful_types = list(range(1, self.controllable_types + 1))
            state.has_reliable_data = False
        state.last_refresh = now
        return True

    def path_changed(self) -> None:
        self.state.map_difficulty = self._compute_map_difficulty()
        if self.tracker is not None and self.path is not None:
            self.tracker.set_total_nodes(self.path.total_nodes)


class ObservationBuilder:
    """Builds the fixed-size observation vector from ``ControllerSignals``."""

    def __init__(self, signals: ControllerSignals, speed_norm: float = 5.0) -> None:
        self.signals = signals
        self.speed_norm = speed_norm

    def build(self, round_index: int) -> np.ndarray:
        s = self.signals
        state = s.state
        n_types = 3
        obs = np.zeros(OBSERVATION_SIZE, dtype=np.float32)
        last = max(1, s.last_node_index)

        obs[0] = round_index / max(1, s.total_rounds)
        obs[1] = s.player_health()
        obs[2] = s.money_fraction()
        obs[3] = s.tracker.global_success_rate() if s.tracker is not None else 0.0

        for i in range(n_types):
            record = s.tracker.record_for(i + 1) if s.tracker is not None else None
            if record is None:
                continue
            base = 4 + i * 4
            obs[base] = record.weighted_progress_rate
            obs[base + 1] = record.average_max_node / last
            obs[base + 2] = record.success_rate
            obs[base + 3] = record.average_speed / self.speed_norm

        for i, unit_type in enumerate(state.progressive_types[:n_types]):
            obs[16 + i] = unit_type / n_types

        obs[19] = state.map_difficulty
        obs[20] = state.health_multiplier / state.max_multiplier
        obs[21] = state.progress_pressure
        obs[22] = state.kill_efficiency

        for i in range(n_types):
            record = s.tracker.record_for(i + 1) if s.tracker is not None else None
            if record is None:
                continue
            obs[23 + i * 2] = record.weighted_progress_rate
            obs[24 + i * 2] = record.average_max_node / last
        return obs
