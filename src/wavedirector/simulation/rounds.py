# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Round definitions — the one transfer object between controller and scheduler.

Architecture
------------
A ``RoundDefinition`` is an immutable description of one round: an ordered
tuple of ``SpawnGroup`` entries plus the round's base spawn interval,
reward, time limit and boss flag.  Group order is significant: the
scheduler emits groups in sequence, waiting ``delay_before_group`` before
each one and ``spawn_interval`` after every unit.

Three deterministic generators live here as well:

  - ``tutorial_round()``  round 0, always the same nine units
  - ``boss_round()``      the final round, minions then one boss unit
  - ``fallback_round()``  any other round when no controller output is ready

Serialization goes through ``to_dict()`` / ``to_json()`` / ``from_dict()``.
``to_json()`` is byte-stable for equal definitions so resets can be
compared exactly.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .errors import MalformedRoundError

# Tutorial round
_TUTORIAL_NAME = "Round 1 - Tutorial"
_TUTORIAL_INTERVAL = 1.2
_TUTORIAL_TIME_LIMIT = 60.0
_TUTORIAL_GROUP_SIZE = 3
_TUTORIAL_GROUP_STAGGER = 1.5   # seconds between tutorial groups

# Fallback generator
_FALLBACK_MIN_INTERVAL = 0.8
_FALLBACK_MIN_UNITS = 10
_FALLBACK_MAX_UNITS = 45
_FALLBACK_MAX_REWARD = 200

# Boss round: (unit_type, count, delay, interval) minion phases
_BOSS_PHASES: tuple[tuple[int, int, float, float], ...] = (
    (2, 8, 0.0, 0.1),
    (3, 6, 1.0, 0.2),
    (1, 10, 2.0, 0.1),
)
_BOSS_DELAY = 3.0
_BOSS_REWARD = 600
_BOSS_TIME_LIMIT = 150.0
_BOSS_INTERVAL = 0.2


@dataclass(frozen=True)
class SpawnGroup:
    """A run of identical units emitted one after another."""

    unit_type: int
    count: int
    delay_before_group: float = 0.0
    spawn_interval: float = 0.0

    def __post_init__(self) -> None:
        if self.count < 0:
            raise MalformedRoundError(f"group count must be >= 0, got {self.count}")
        if self.delay_before_group < 0 or self.spawn_interval < 0:
            raise MalformedRoundError("group delay and interval must be >= 0")

    def to_dict(self) -> dict:
        return {
            "unit_type": self.unit_type,
            "count": self.count,
            "delay_before_group": self.delay_before_group,
            "spawn_interval": self.spawn_interval,
        }


@dataclass(frozen=True)
class RoundDefinition:
    """Immutable description of one round."""

    name: str
    groups: tuple[SpawnGroup, ...]
    spawn_interval: float
    reward: int
    time_limit: float
    is_boss: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "groups", tuple(self.groups))
        if not self.groups:
            raise MalformedRoundError(f"round {self.name!r} has no spawn groups")
        if self.spawn_interval < 0 or self.reward < 0 or self.time_limit < 0:
            raise MalformedRoundError(f"round {self.name!r} has negative numeric fields")

    @property
    def total_units(self) -> int:
        return sum(g.count for g in self.groups)

    @property
    def unit_types(self) -> list[int]:
        """Distinct unit types in first-appearance order."""
        seen: list[int] = []
        for g in self.groups:
            if g.unit_type not in seen:
                seen.append(g.unit_type)
        return seen

    def counts_by_type(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for g in self.groups:
            counts[g.unit_type] = counts.get(g.unit_type, 0) + g.count
        return counts

    def interval_for(self, group: SpawnGroup) -> float:
        """Per-unit wait for ``group``; a zero interval falls back to the round's."""
        return group.spawn_interval if group.spawn_interval > 0 else self.spawn_interval

    # -- Serialization ----------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "groups": [g.to_dict() for g in self.groups],
            "spawn_interval": self.spawn_interval,
            "reward": self.reward,
            "time_limit": self.time_limit,
            "is_boss": self.is_boss,
            "total_units": self.total_units,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoundDefinition":
        """Build a definition from a mapping, raising MalformedRoundError on bad input."""
        try:
            raw_groups = data["groups"]
            if raw_groups is None:
                raise MalformedRoundError("groups is null")
            groups = tuple(
                SpawnGroup(
                    unit_type=int(g["unit_type"]),
                    count=int(g["count"]),
                    delay_before_group=float(g.get("delay_before_group", 0.0)),
                    spawn_interval=float(g.get("spawn_interval", 0.0)),
                )
                for g in raw_groups
            )
            return cls(
                name=str(data.get("name", "Round")),
                groups=groups,
                spawn_interval=float(data.get("spawn_interval", 1.0)),
                reward=int(data.get("reward", 0)),
                time_limit=float(data.get("time_limit", 0.0)),
                is_boss=bool(data.get("is_boss", False)),
            )
        except MalformedRoundError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise MalformedRoundError(f"cannot parse round definition: {exc}") from exc

    @classmethod
    def coerce(cls, payload: "RoundDefinition | Mapping[str, Any] | None") -> "RoundDefinition":
        """Accept a definition or its dict form; anything else is malformed."""
        if isinstance(payload, RoundDefinition):
            return payload
        if isinstance(payload, Mapping):
            return cls.from_dict(payload)
        raise MalformedRoundError(f"unsupported round payload: {type(payload).__name__}")


# -- Fixed generators -----------------------------------------------------------


def tutorial_round(reward: int = 100) -> RoundDefinition:
    """Round 0: three groups of three units, one group per basic type."""
    groups = [
        SpawnGroup(
            unit_type=i + 1,
            count=_TUTORIAL_GROUP_SIZE,
            delay_before_group=i * _TUTORIAL_GROUP_STAGGER,
            spawn_interval=1.0,
        )
        for i in range(3)
    ]
    return RoundDefinition(
        name=_TUTORIAL_NAME,
        groups=tuple(groups),
        spawn_interval=_TUTORIAL_INTERVAL,
        reward=reward,
        time_limit=_TUTORIAL_TIME_LIMIT,
    )


def boss_round(
    round_index: int,
    rng: random.Random | None = None,
    boss_types: Iterable[int] = (4, 5, 6),
) -> RoundDefinition:
    """Final round: three minion phases followed by a single boss."""
    rng = rng or random.Random()
    groups = [SpawnGroup(t, n, d, i) for t, n, d, i in _BOSS_PHASES]
    groups.append(SpawnGroup(rng.choice(list(boss_types)), 1, _BOSS_DELAY, 0.0))
    return RoundDefinition(
        name=f"ROUND {round_index + 1} - BOSS",
        groups=tuple(groups),
        spawn_interval=_BOSS_INTERVAL,
        reward=_BOSS_REWARD,
        time_limit=_BOSS_TIME_LIMIT,
        is_boss=True,
    )


def fallback_round(round_index: int) -> RoundDefinition:
    """Deterministic round used whenever no controller output is ready.

    Early rounds split evenly across the three basic types, the middle
    band leans on type 1, and late rounds lead with fast type 2 units.
    Rounding drift is folded into the first group so the total is exact.
    """
    idx = max(0, round_index)
    base = max(_FALLBACK_MIN_INTERVAL, 1.2 - idx * 0.05)
    total = min(_FALLBACK_MAX_UNITS, max(_FALLBACK_MIN_UNITS, 10 + idx * 4))

    if idx < 5:
        specs = [(i + 1, total // 3, i * 2.0, base) for i in range(3)]
    elif idx < 10:
        first = _rint(total * 0.4)
        second = _rint(total * 0.35)
        specs = [
            (1, first, 0.0, base),
            (2, second, 3.0, base * 0.8),
            (3, total - first - second, 6.0, base * 1.2),
        ]
    else:
        first = _rint(total * 0.5)
        second = _rint(total * 0.3)
        specs = [
            (2, first, 0.0, base * 0.7),
            (3, second, 4.0, base * 1.1),
            (1, total - first - second, 8.0, base),
        ]

    drift = total - sum(s[1] for s in specs)
    if drift:
        t, n, d, i = specs[0]
        specs[0] = (t, n + drift, d, i)

    return RoundDefinition(
        name=f"Round {idx + 1} (Fallback)",
        groups=tuple(SpawnGroup(t, n, d, i) for t, n, d, i in specs),
        spawn_interval=base,
        reward=min(80 + idx * 15, _FALLBACK_MAX_REWARD),
        time_limit=60.0 + idx * 12,
    )


def _rint(value: float) -> int:
    return int(round(value))
