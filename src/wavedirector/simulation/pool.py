# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""UnitPool — arena of reusable hostile units.

Architecture
------------
Each unit type owns a dense list of ``UnitHandle`` slots plus a free list
of slot indices.  ``spawn_unit`` pops a free slot (or appends a new one
while under capacity) and initializes it from the type's archetype and
the current round's health multiplier.  ``return_unit`` marks the slot
dead and pushes its index back on the free list.  A handle's
``generation`` increases on every reuse so a stale reference can be
recognized and ignored.

When a type is at capacity and nothing is free, the spawn returns None
and the caller skips that slot; the round still completes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping

from loguru import logger

from wavedirector.config import UnitArchetype


@dataclass(eq=False)
class UnitHandle:
    """One pooled hostile unit."""

    unit_type: int
    slot: int
    generation: int = 0
    round_index: int = -1
    max_health: float = 0.0
    health: float = 0.0
    speed: float = 0.0
    gold_value: int = 0
    max_node_reached: int = 0
    alive: bool = False

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.unit_type, self.slot, self.generation)

    def to_dict(self) -> dict:
        return {
            "unit_type": self.unit_type,
            "slot": self.slot,
            "generation": self.generation,
            "round_index": self.round_index,
            "max_health": round(self.max_health, 3),
            "health": round(self.health, 3),
            "speed": self.speed,
            "gold_value": self.gold_value,
            "max_node_reached": self.max_node_reached,
            "alive": self.alive,
        }


def scaled_gold_value(base: int, round_index: int, growth: float = 0.02) -> int:
    """Kill reward for a unit of ``base`` value in ``round_index``, within [base, 3*base]."""
    value = int(round(base * (1.0 + max(0, round_index) * growth)))
    return max(base, min(3 * base, value))


class UnitPool:
    """Dense per-type slot lists with free lists."""

    def __init__(
        self,
        archetypes: Mapping[int, UnitArchetype],
        capacity_per_type: int = 64,
        kill_reward_growth: float = 0.02,
    ) -> None:
        self.archetypes = dict(archetypes)
        self.capacity_per_type = capacity_per_type
        self.kill_reward_growth = kill_reward_growth
        self._slots: dict[int, list[UnitHandle]] = {t: [] for t in self.archetypes}
        self._free: dict[int, list[int]] = {t: [] for t in self.archetypes}
        self._round_index = 0
        self._health_multiplier = 1.0

    # -- Round configuration ----------------------------------------------------

    def configure_round(self, round_index: int, health_multiplier: float) -> None:
        """Set the round whose stats new spawns receive."""
        self._round_index = round_index
        self._health_multiplier = health_multiplier

    @property
    def health_multiplier(self) -> float:
        return self._health_multiplier

    # -- Spawner ----------------------------------------------------------------

    def spawn_unit(self, unit_type: int) -> UnitHandle | None:
        archetype = self.archetypes.get(unit_type)
        if archetype is None:
            logger.warning(f"No archetype for unit type {unit_type}, skipping spawn")
            return None

        slots = self._slots[unit_type]
        free = self._free[unit_type]
        if free:
            unit = slots[free.pop()]
            unit.generation += 1
        elif len(slots) < self.capacity_per_type:
            unit = UnitHandle(unit_type=unit_type, slot=len(slots))
            slots.append(unit)
        else:
            logger.warning(f"Unit pool exhausted for type {unit_type} ({self.capacity_per_type} live)")
            return None

        self._initialize(unit, archetype)
        return unit

    def return_unit(self, unit: UnitHandle) -> None:
        slots = self._slots.get(unit.unit_type)
        if slots is None or unit.slot >= len(slots) or slots[unit.slot] is not unit:
            logger.warning(f"Ignoring return of foreign unit {unit.key}")
            return
        if not unit.alive:
            return
        unit.alive = False
        unit.health = 0.0
        self._free[unit.unit_type].append(unit.slot)

    # -- Roster -----------------------------------------------------------------

    def live_units(self, unit_type: int | None = None) -> Iterator[UnitHandle]:
        types = [unit_type] if unit_type is not None else sorted(self._slots)
        for t in types:
            for unit in self._slots.get(t, ()):
                if unit.alive:
                    yield unit

    def live_count(self, unit_type: int | None = None) -> int:
        return sum(1 for _ in self.live_units(unit_type))

    def free_count(self, unit_type: int) -> int:
        """Slots still available for ``unit_type`` before exhaustion."""
        used = len(self._slots.get(unit_type, ())) - len(self._free.get(unit_type, ()))
        return self.capacity_per_type - used

    def reinitialize(self, unit: UnitHandle) -> None:
        """Restore a live unit to full, current-round stats."""
        archetype = self.archetypes.get(unit.unit_type)
        if archetype is None or not unit.alive:
            return
        self._initialize(unit, archetype)

    def clear(self) -> int:
        """Return every live unit to its free list.  Returns how many were live."""
        live = list(self.live_units())
        for unit in live:
            self.return_unit(unit)
        return len(live)

    def reset(self) -> None:
        self.clear()
        self._round_index = 0
        self._health_multiplier = 1.0

    # -- Internal ---------------------------------------------------------------

    def _initialize(self, unit: UnitHandle, archetype: UnitArchetype) -> None:
        unit.round_index = self._round_index
        unit.max_health = archetype.max_health * self._health_multiplier
        unit.health = unit.max_health
        unit.speed = archetype.speed
        unit.gold_value = scaled_gold_value(
            archetype.gold_value, self._round_index, self.kill_reward_growth,
        )
        unit.max_node_reached = 0
        unit.alive = True
