# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""PerformanceTracker -- per-unit-type outcome statistics across rounds.

Architecture
------------
PerformanceTracker keeps lifetime statistics per hostile unit type plus a
separate record per round.  It is written only by the round scheduler's
callbacks (spawn, speed, defeat, reached end) and read by the difficulty
controller when it builds observations and rankings.

Lifetime record (UnitPerformanceRecord):
  spawn / reached-end counters, summed max path node reached, speed
  samples, a bucket count per path node and a bounded ring of recent
  progress fractions.  Everything else (success rate, weighted progress,
  effectiveness) is computed on read.

Weighted progress:
  node ``i`` of ``N`` contributes ``((i+1)/N)**3 * 8`` per sample, the sum
  is divided by the sample count and clamped to [0, 1].  Deep
  penetration dominates: a unit reaching the last node scores the full 1.

Rankings:
  Types below the reliability floor are excluded.  When no type clears
  the floor a fixed default ranking is returned so callers always get a
  usable ordering.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

# Default orderings when nothing is reliable yet
_DEFAULT_RANKING = (1, 2, 3)
_DEFAULT_FASTEST = (2, 1, 3)

# Weighted progress curve
_PROGRESS_EXPONENT = 3.0
_PROGRESS_SCALE = 8.0

# Effectiveness score weights (ranking)
_EFF_PROGRESS = 0.8
_EFF_SUCCESS = 0.1
_EFF_SPEED = 0.1

# Progressive ranking weights
_PROG_PROGRESS = 0.6
_PROG_SUCCESS = 0.4

# Neutral effectiveness for unreliable types
_NEUTRAL_EFFECTIVENESS = 0.5


@dataclass
class UnitPerformanceRecord:
    """Outcome statistics for one unit type."""

    unit_type: int
    total_nodes: int = 0
    speed_norm: float = 5.0

    times_spawned: int = 0
    times_reached_end: int = 0
    total_max_nodes_reached: int = 0
    analysis_samples: int = 0
    total_speed: float = 0.0
    speed_samples: int = 0

    node_counts: dict[int, int] = field(default_factory=dict)
    recent_progress: deque = field(default_factory=lambda: deque(maxlen=7))

    @property
    def success_rate(self) -> float:
        """reached_end / spawned.  0 if never spawned."""
        return self.times_reached_end / self.times_spawned if self.times_spawned > 0 else 0.0

    @property
    def average_max_node(self) -> float:
        return self.total_max_nodes_reached / self.analysis_samples if self.analysis_samples > 0 else 0.0

    @property
    def average_speed(self) -> float:
        """Mean observed speed, 1.0 before any sample."""
        return self.total_speed / self.speed_samples if self.speed_samples > 0 else 1.0

    @property
    def normalized_speed(self) -> float:
        return min(1.0, self.average_speed / self.speed_norm)

    @property
    def weighted_progress_rate(self) -> float:
        n = self.total_nodes
        if self.times_spawned == 0 or n <= 1:
            return 0.0
        weighted = 0.0
        samples = 0
        for node, count in self.node_counts.items():
            if count <= 0 or node < 0 or node >= n:
                continue
            weighted += count * ((node + 1) / n) ** _PROGRESS_EXPONENT * _PROGRESS_SCALE
            samples += count
        if samples == 0:
            return 0.0
        return max(0.0, min(1.0, weighted / samples))

    @property
    def recent_weighted_progress(self) -> float:
        """Mean of the recent progress ring, or lifetime weighted progress if empty."""
        if not self.recent_progress:
            return self.weighted_progress_rate
        return sum(self.recent_progress) / len(self.recent_progress)

    @property
    def effectiveness_score(self) -> float:
        return (
            _EFF_PROGRESS * self.weighted_progress_rate
            + _EFF_SUCCESS * self.success_rate
            + _EFF_SPEED * self.normalized_speed
        )

    @property
    def progressive_score(self) -> float:
        return _PROG_PROGRESS * self.weighted_progress_rate + _PROG_SUCCESS * self.success_rate

    def add_progress_sample(self, node: int, last_node_index: int) -> None:
        self.node_counts[node] = self.node_counts.get(node, 0) + 1
        if last_node_index > 0:
            self.recent_progress.append(node / last_node_index)
        else:
            self.recent_progress.append(0.0)

    def to_dict(self) -> dict:
        return {
            "unit_type": self.unit_type,
            "times_spawned": self.times_spawned,
            "times_reached_end": self.times_reached_end,
            "analysis_samples": self.analysis_samples,
            "speed_samples": self.speed_samples,
            "success_rate": round(self.success_rate, 4),
            "average_max_node": round(self.average_max_node, 2),
            "average_speed": round(self.average_speed, 3),
            "weighted_progress_rate": round(self.weighted_progress_rate, 4),
            "recent_weighted_progress": round(self.recent_weighted_progress, 4),
            "effectiveness_score": round(self.effectiveness_score, 4),
        }


@dataclass
class RoundPerformanceRecord:
    """Per-round counters, kept apart from the lifetime records."""

    round_index: int
    units: dict[int, UnitPerformanceRecord] = field(default_factory=dict)

    @property
    def total_spawned(self) -> int:
        return sum(r.times_spawned for r in self.units.values())

    @property
    def total_reached_end(self) -> int:
        return sum(r.times_reached_end for r in self.units.values())

    @property
    def success_rate(self) -> float:
        spawned = self.total_spawned
        return self.total_reached_end / spawned if spawned > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "round_index": self.round_index,
            "total_spawned": self.total_spawned,
            "total_reached_end": self.total_reached_end,
            "success_rate": round(self.success_rate, 4),
            "units": {str(k): v.to_dict() for k, v in sorted(self.units.items())},
        }


class PerformanceTracker:
    """Lifetime and per-round outcome statistics per unit type."""

    def __init__(
        self,
        total_nodes: int = 0,
        reliability_floor: int = 2,
        recent_window: int = 7,
        speed_norm: float = 5.0,
    ) -> None:
        self.reliability_floor = reliability_floor
        self.recent_window = recent_window
        self.speed_norm = speed_norm
        self._total_nodes = total_nodes
        self._records: dict[int, UnitPerformanceRecord] = {}
        self._rounds: dict[int, RoundPerformanceRecord] = {}

    # -- Path topology ----------------------------------------------------------

    @property
    def total_nodes(self) -> int:
        return self._total_nodes

    @property
    def last_node_index(self) -> int:
        return max(0, self._total_nodes - 1)

    def set_total_nodes(self, total_nodes: int) -> None:
        self._total_nodes = total_nodes
        for record in self._records.values():
            record.total_nodes = total_nodes
        for rnd in self._rounds.values():
            for record in rnd.units.values():
                record.total_nodes = total_nodes

    # -- Recording --------------------------------------------------------------

    def record_spawn(self, unit_type: int, round_index: int) -> None:
        self._round_unit(round_index, unit_type).times_spawned += 1
        self._global(unit_type).times_spawned += 1

    def record_speed(self, unit_type: int, speed: float, round_index: int | None = None) -> None:
        records = [self._global(unit_type)]
        if round_index is not None:
            records.append(self._round_unit(round_index, unit_type))
        for record in records:
            record.total_speed += speed
            record.speed_samples += 1

    def record_reached_end(self, unit_type: int, round_index: int) -> None:
        last = self.last_node_index
        for record in (self._round_unit(round_index, unit_type), self._global(unit_type)):
            record.times_reached_end += 1
            record.total_max_nodes_reached += last
            record.analysis_samples += 1
            record.add_progress_sample(last, last)

    def record_defeated(self, unit_type: int, round_index: int, max_node_reached: int) -> None:
        node = max(0, min(int(max_node_reached), self.last_node_index))
        for record in (self._round_unit(round_index, unit_type), self._global(unit_type)):
            record.total_max_nodes_reached += node
            record.analysis_samples += 1
            record.add_progress_sample(node, self.last_node_index)

    # -- Queries ----------------------------------------------------------------

    def record_for(self, unit_type: int) -> UnitPerformanceRecord | None:
        return self._records.get(unit_type)

    def round_record(self, round_index: int) -> RoundPerformanceRecord | None:
        return self._rounds.get(round_index)

    @property
    def records(self) -> list[UnitPerformanceRecord]:
        """Lifetime records in unit-type order."""
        return [self._records[k] for k in sorted(self._records)]

    def is_reliable(self, unit_type: int) -> bool:
        record = self._records.get(unit_type)
        return record is not None and record.analysis_samples >= self.reliability_floor

    def has_reliable_data(self) -> bool:
        return any(r.analysis_samples >= self.reliability_floor for r in self._records.values())

    def global_success_rate(self) -> float:
        spawned = sum(r.times_spawned for r in self._records.values())
        reached = sum(r.times_reached_end for r in self._records.values())
        return reached / spawned if spawned > 0 else 0.0

    def total_spawned(self) -> int:
        return sum(r.times_spawned for r in self._records.values())

    def total_reached_end(self) -> int:
        return sum(r.times_reached_end for r in self._records.values())

    def effectiveness_for(self, unit_type: int) -> float:
        """Effectiveness score of ``unit_type``, neutral 0.5 while unreliable."""
        if not self.is_reliable(unit_type):
            return _NEUTRAL_EFFECTIVENESS
        return self._records[unit_type].effectiveness_score

    # -- Rankings ---------------------------------------------------------------

    def most_successful(self, count: int = 2) -> list[int]:
        eligible = [r for r in self._records.values() if r.times_spawned >= self.reliability_floor]
        if not eligible:
            return list(_DEFAULT_RANKING[:count])
        eligible.sort(key=lambda r: (r.success_rate, r.average_max_node), reverse=True)
        return [r.unit_type for r in eligible[:count]]

    def most_progressive(self, count: int = 3) -> list[int]:
        eligible = [r for r in self._records.values() if r.analysis_samples >= self.reliability_floor]
        if not eligible:
            return list(_DEFAULT_RANKING[:count])
        eligible.sort(key=lambda r: r.progressive_score, reverse=True)
        return [r.unit_type for r in eligible[:count]]

    def fastest(self, count: int = 2) -> list[int]:
        eligible = [r for r in self._records.values() if r.speed_samples >= self.reliability_floor]
        if not eligible:
            return list(_DEFAULT_FASTEST[:count])
        eligible.sort(key=lambda r: (r.average_speed, r.success_rate), reverse=True)
        return [r.unit_type for r in eligible[:count]]

    def most_effective(self, count: int = 2) -> list[int]:
        eligible = [r for r in self._records.values() if r.times_spawned >= self.reliability_floor]
        if not eligible:
            return list(_DEFAULT_RANKING[:count])
        eligible.sort(key=lambda r: r.effectiveness_score, reverse=True)
        return [r.unit_type for r in eligible[:count]]

    # -- Lifecycle --------------------------------------------------------------

    def reset(self) -> None:
        """Drop every lifetime and per-round record."""
        self._records.clear()
        self._rounds.clear()

    def to_dict(self) -> dict:
        return {
            "total_nodes": self._total_nodes,
            "global_success_rate": round(self.global_success_rate(), 4),
            "units": [r.to_dict() for r in self.records],
            "rounds": [self._rounds[k].to_dict() for k in sorted(self._rounds)],
        }

    # -- Internal ---------------------------------------------------------------

    def _new_record(self, unit_type: int) -> UnitPerformanceRecord:
        return UnitPerformanceRecord(
            unit_type=unit_type,
            total_nodes=self._total_nodes,
            speed_norm=self.speed_norm,
            recent_progress=deque(maxlen=self.recent_window),
        )

    def _global(self, unit_type: int) -> UnitPerformanceRecord:
        record = self._records.get(unit_type)
        if record is None:
            record = self._new_record(unit_type)
            self._records[unit_type] = record
        return record

    def _round_unit(self, round_index: int, unit_type: int) -> UnitPerformanceRecord:
        rnd = self._rounds.get(round_index)
        if rnd is None:
            rnd = RoundPerformanceRecord(round_index=round_index)
            self._rounds[round_index] = rnd
        record = rnd.units.get(unit_type)
        if record is None:
            record = self._new_record(unit_type)
            rnd.units[unit_type] = record
        return record
