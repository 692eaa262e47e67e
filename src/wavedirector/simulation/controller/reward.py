# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Round reward shaping and strategy history.

The reward favors rounds where between a quarter and two thirds of the
units got through: hard enough to hurt, not hard enough to overwhelm.

  success in [0.25, 0.65]            +2.5
    and health in [0.25, 0.75]       +1.5
    and > 20 units, success > 0.3    +1.2
    and round > 5, success > 0.35    +0.8
  success < 0.1                      -2.0
  success > 0.9                      -2.5
  health < 0.1                       -1.5
  fewer than 8 units                 -1.0
"""

from __future__ import annotations

from collections import OrderedDict, deque
from dataclasses import dataclass, field

from wavedirector.simulation.rounds import RoundDefinition


def compute_reward(
    success_rate: float,
    player_health: float,
    total_units: int,
    round_index: int,
) -> float:
    reward = 0.0
    if 0.25 <= success_rate <= 0.65:
        reward += 2.5
        if 0.25 <= player_health <= 0.75:
            reward += 1.5
        if total_units > 20 and success_rate > 0.3:
            reward += 1.2
        if round_index > 5 and success_rate > 0.35:
            reward += 0.8

    if success_rate < 0.1:
        reward -= 2.0
    if success_rate > 0.9:
        reward -= 2.5
    if player_health < 0.1:
        reward -= 1.5
    if total_units < 8:
        reward -= 1.0
    return reward


def strategy_signature(definition: RoundDefinition) -> str:
    """Composition fingerprint, e.g. ``1x3,1x3,2x2,D1.0``."""
    groups = sorted(definition.groups, key=lambda g: g.unit_type)
    parts = [f"{g.unit_type}x{g.count}" for g in groups]
    parts.append(f"D{definition.spawn_interval:.1f}")
    return ",".join(parts)


@dataclass
class StrategyRecord:
    signature: str
    scores: deque = field(default_factory=lambda: deque(maxlen=10))
    usage_count: int = 0

    @property
    def average(self) -> float:
        """Mean of the positive scores in the window."""
        positive = [s for s in self.scores if s > 0]
        return sum(positive) / len(positive) if positive else 0.0

    def to_dict(self) -> dict:
        return {
            "signature": self.signature,
            "average": round(self.average, 3),
            "usage_count": self.usage_count,
            "scores": [round(s, 3) for s in self.scores],
        }


class StrategyHistory:
    """Rolling scores per composition signature, oldest signature evicted first."""

    def __init__(self, window: int = 10, memory: int = 20) -> None:
        self.window = window
        self.memory = memory
        self._records: OrderedDict[str, StrategyRecord] = OrderedDict()

    def __len__(self) -> int:
        return len(self._records)

    def record(self, definition: RoundDefinition, score: float) -> StrategyRecord:
        signature = strategy_signature(definition)
        entry = self._records.get(signature)
        if entry is None:
            entry = StrategyRecord(signature, deque(maxlen=self.window))
            self._records[signature] = entry
            while len(self._records) > self.memory:
                self._records.popitem(last=False)
        entry.scores.append(score)
        entry.usage_count += 1
        return entry

    def get(self, signature: str) -> StrategyRecord | None:
        return self._records.get(signature)

    def best(self) -> StrategyRecord | None:
        if not self._records:
            return None
        return max(self._records.values(), key=lambda r: r.average)

    def clear(self) -> None:
        self._records.clear()

    def to_dict(self) -> dict:
        return {"strategies": [r.to_dict() for r in self._records.values()]}
