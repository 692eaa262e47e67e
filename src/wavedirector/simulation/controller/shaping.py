# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Progressive action shaping applied to every decided action.

Whatever a strategy decides, the round is shaped by game phase before
composition:

  early (< 4)  density  clamp(0.5 + 0.3m + 0.2p, 0.4, 0.7)
               speed    clamp(0.5 + 0.3p, 0.4, 0.7)
               best progressive type x(1.4 + 0.3p) on hard maps (> 0.6)
  mid   (< 9)  density  clamp(0.7 + 0.4m + 0.3p, 0.6, 0.9)
               speed    clamp(0.6 + 0.4p, 0.5, 0.8)
               top two progressive types x(1.6 + 0.4p), fastest x1.3 on maps > 0.7
  late         density  clamp(0.8 + 0.5m + 0.4p, 0.7, 1.0)
               speed    clamp(0.7 + 0.5p, 0.6, 0.9)
               top three progressive types x(1.8 + 0.5p + 0.3a), type 3 x1.4 on maps > 0.8

where ``m = clamp01(round / 14)``, ``p`` is player pressure and ``a`` the
map adaptation factor.  Synergies follow (type 2 on hard maps after
round 3, type 3 after round 7) and proportions are normalized last.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

_EARLY_END = 4
_MID_END = 9
_PHASE_SPAN = 14.0


@dataclass(frozen=True)
class ShapedAction:
    """Normalized proportions for types 1..3 plus density and speed."""

    proportions: tuple[float, float, float]
    density: float
    speed: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _lerp(a: float, b: float, t: float) -> float:
    t = _clamp(t, 0.0, 1.0)
    return a + (b - a) * t


def _boost(proportions: list[float], unit_type: int, factor: float) -> None:
    index = unit_type - 1
    if 0 <= index < len(proportions):
        proportions[index] *= factor


def normalize(proportions: Sequence[float]) -> list[float]:
    total = sum(proportions)
    if total <= 0:
        return list(proportions)
    return [p / total for p in proportions]


def shape_action(
    proportions: Sequence[float],
    round_index: int,
    player_pressure: float,
    map_adaptation: float,
    progressive_types: Sequence[int],
    fastest_types: Sequence[int] = (2,),
) -> ShapedAction:
    """Apply phase strategy and synergies to raw proportions."""
    props = [float(p) for p in proportions[:3]]
    while len(props) < 3:
        props.append(0.0)
    m = _clamp(round_index / _PHASE_SPAN, 0.0, 1.0)
    p = player_pressure
    a = map_adaptation

    if round_index < _EARLY_END:
        density = _clamp(0.5 + m * 0.3 + p * 0.2, 0.4, 0.7)
        speed = _clamp(0.5 + p * 0.3, 0.4, 0.7)
        if a > 0.6 and progressive_types:
            _boost(props, progressive_types[0], 1.4 + p * 0.3)
    elif round_index < _MID_END:
        density = _clamp(0.7 + m * 0.4 + p * 0.3, 0.6, 0.9)
        speed = _clamp(0.6 + p * 0.4, 0.5, 0.8)
        for unit_type in progressive_types[:2]:
            _boost(props, unit_type, 1.6 + p * 0.4)
        if a > 0.7 and fastest_types:
            _boost(props, fastest_types[0], 1.3)
    else:
        density = _clamp(0.8 + m * 0.5 + p * 0.4, 0.7, 1.0)
        speed = _clamp(0.7 + p * 0.5, 0.6, 0.9)
        for unit_type in progressive_types[:3]:
            _boost(props, unit_type, 1.8 + p * 0.5 + a * 0.3)
        if a > 0.8:
            _boost(props, 3, 1.4)

    # Synergies
    if round_index > 3 and a > 0.6 and 2 in progressive_types:
        _boost(props, 2, 1.0 + _lerp(0.1, 0.4, a))
    if round_index > 7 and 3 in progressive_types:
        _boost(props, 3, 1.3)

    props = normalize(props)
    return ShapedAction(proportions=(props[0], props[1], props[2]), density=density, speed=speed)
