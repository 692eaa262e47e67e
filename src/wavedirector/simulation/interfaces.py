# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Collaborator interfaces consumed by the round pipeline.

The scheduler and controller talk to the host game only through these
protocols.  Default implementations live in ``pool``, ``player``,
``economy`` and ``path``; a host engine can substitute its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    import numpy as np

    from .pool import UnitHandle


@runtime_checkable
class Spawner(Protocol):
    """Creates and recycles hostile units."""

    def spawn_unit(self, unit_type: int) -> UnitHandle | None:
        """Return a live unit, or None when the slot cannot be filled."""
        ...

    def return_unit(self, unit: UnitHandle) -> None:
        ...

    def configure_round(self, round_index: int, health_multiplier: float) -> None:
        """Fix the health multiplier applied to every unit spawned this round."""
        ...


@runtime_checkable
class UnitRoster(Protocol):
    """Optional spawner extension used by the consistency sweep."""

    def live_units(self, unit_type: int | None = None) -> Iterator[UnitHandle]:
        ...

    def reinitialize(self, unit: UnitHandle) -> None:
        ...


@runtime_checkable
class PlayerStateReader(Protocol):
    def current_lives(self) -> int:
        ...

    def max_lives(self) -> int:
        ...


@runtime_checkable
class EconomyReader(Protocol):
    def current_funds(self) -> int:
        ...

    def grant(self, amount: int, reason: str) -> bool:
        ...


@runtime_checkable
class PathTopology(Protocol):
    @property
    def node_positions(self) -> np.ndarray:
        ...

    @property
    def node_distances(self) -> np.ndarray:
        ...

    @property
    def total_nodes(self) -> int:
        ...

    @property
    def last_node_index(self) -> int:
        ...


@runtime_checkable
class Policy(Protocol):
    """An externally trained decision policy.

    ``predict`` maps an observation vector to six raw action values in
    ``[p_a, p_b, p_c, density, speed, health_adjustment]`` order.
    """

    def predict(self, observation: np.ndarray) -> Sequence[float]:
        ...

    def add_reward(self, reward: float) -> None:
        ...
