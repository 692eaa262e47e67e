# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""WaveComposer — turns a shaped action into a concrete round.

Architecture
------------
Composition runs in four steps:

  1. Size.  base = 8 + 3i, plus 2 per round past 5 (4 per round past 10),
     scaled 0.9 on hard maps (adaptation > 0.7) and 1.1 on easy ones
     (< 0.4), minimum 8.  total = round(base * (0.7 + 0.6 * density))
     clamped to [8, 25 + 2i].
  2. Split.  Each type with proportion > 0.05 gets round(total * p),
     capped at what is left.  Leftovers go to the most progressive
     type (type 1 when no ranking exists) so the sum is exactly total.
  3. Group.  Groups of 3 before round 3, then 2.  Each group spawns at
     ``base_interval * (1 - 0.6 * speed) * type_factor`` with
     type factors 1.0 / 0.8 / 1.3 for types 1 / 2 / 3.
  4. Interleave.  Group slot ``i`` of every type goes out together, the
     types in random order, each with ``delay_before_group = i * 1.2``.

The base interval is ``1.6 - 1.4 * speed``.
"""

from __future__ import annotations

import math
import random
from typing import Sequence

from loguru import logger

from .controller.shaping import ShapedAction
from .rounds import RoundDefinition, SpawnGroup

_MIN_TYPE_SHARE = 0.05
_INTERLEAVE_STAGGER = 1.2
_TYPE_SPAWN_FACTOR = {1: 1.0, 2: 0.8, 3: 1.3}
_MIN_UNITS = 8


def base_unit_count(round_index: int, map_adaptation: float) -> int:
    base = 8 + 3 * round_index
    if round_index > 10:
        base += (round_index - 10) * 4
    elif round_index > 5:
        base += (round_index - 5) * 2
    if map_adaptation > 0.7:
        base = int(round(base * 0.9))
    elif map_adaptation < 0.4:
        base = int(round(base * 1.1))
    return max(_MIN_UNITS, base)


def round_reward(round_index: int, progressive_known: bool) -> int:
    reward = int(round((90 + round_index * 20) * (1.3 if progressive_known else 1.0)))
    return max(100, min(300, reward))


def group_size_for(round_index: int) -> int:
    return 3 if round_index < 3 else 2


class WaveComposer:
    """Builds a RoundDefinition from a shaped controller action."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def compose(
        self,
        action: ShapedAction,
        round_index: int,
        *,
        progressive_types: Sequence[int] = (),
        map_adaptation: float = 0.5,
        progressive_known: bool = False,
    ) -> RoundDefinition:
        total = self.total_units(action.density, round_index, map_adaptation)
        counts = self.split_counts(action.proportions, total, progressive_types)
        base_interval = 1.6 - action.speed * 1.4
        size = group_size_for(round_index)

        per_type: dict[int, list[SpawnGroup]] = {}
        for unit_type, count in counts.items():
            if count <= 0:
                continue
            interval = base_interval * (1.0 - action.speed * 0.6) * _TYPE_SPAWN_FACTOR.get(unit_type, 1.0)
            groups = []
            for g in range(math.ceil(count / size)):
                groups.append(SpawnGroup(unit_type, min(size, count - g * size), 0.0, interval))
            per_type[unit_type] = groups

        ordered = self._interleave(per_type)
        definition = RoundDefinition(
            name=f"Adaptive Round #{round_index + 1}",
            groups=tuple(ordered),
            spawn_interval=base_interval,
            reward=round_reward(round_index, progressive_known),
            time_limit=65.0 + round_index * 15,
        )
        logger.debug(
            f"Composed round {round_index}: {definition.total_units} units "
            f"{definition.counts_by_type()} in {len(ordered)} groups"
        )
        return definition

    @staticmethod
    def total_units(density: float, round_index: int, map_adaptation: float) -> int:
        base = base_unit_count(round_index, map_adaptation)
        total = int(round(base * (0.7 + density * 0.6)))
        return max(_MIN_UNITS, min(25 + 2 * round_index, total))

    @staticmethod
    def split_counts(
        proportions: Sequence[float],
        total: int,
        progressive_types: Sequence[int] = (),
    ) -> dict[int, int]:
        """Integer counts per type 1..3 summing exactly to ``total``."""
        counts = {1: 0, 2: 0, 3: 0}
        remaining = total
        for i, share in enumerate(proportions[:3]):
            if share > _MIN_TYPE_SHARE:
                n = min(max(0, int(round(total * share))), remaining)
                counts[i + 1] = n
                remaining -= n
        if remaining > 0:
            target = progressive_types[0] if progressive_types else 1
            if target not in counts:
                target = 1
            counts[target] += remaining
        return counts

    def _interleave(self, per_type: dict[int, list[SpawnGroup]]) -> list[SpawnGroup]:
        if not per_type:
            return []
        ordered: list[SpawnGroup] = []
        slots = max(len(g) for g in per_type.values())
        for i in range(slots):
            types = sorted(per_type)
            self.rng.shuffle(types)
            for unit_type in types:
                groups = per_type[unit_type]
                if i < len(groups):
                    g = groups[i]
                    ordered.append(SpawnGroup(g.unit_type, g.count, i * _INTERLEAVE_STAGGER, g.spawn_interval))
        return ordered
