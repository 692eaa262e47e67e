# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for UnitPool — slot reuse, exhaustion and round scaling."""

from __future__ import annotations

import pytest

from wavedirector.config import UnitArchetype
from wavedirector.simulation.interfaces import Spawner, UnitRoster
from wavedirector.simulation.pool import UnitPool, scaled_gold_value

pytestmark = pytest.mark.unit


@pytest.fixture
def pool() -> UnitPool:
    return UnitPool(
        {
            1: UnitArchetype(name="grunt", max_health=10.0, speed=2.0, gold_value=10),
            4: UnitArchetype(name="warlord", max_health=100.0, speed=1.0, gold_value=50),
        },
        capacity_per_type=2,
    )


class TestSpawnAndReturn:
    def test_pool_satisfies_protocols(self, pool):
        assert isinstance(pool, Spawner)
        assert isinstance(pool, UnitRoster)

    def test_spawn_initializes_from_archetype(self, pool):
        unit = pool.spawn_unit(1)
        assert unit.alive
        assert unit.max_health == 10.0
        assert unit.health == 10.0
        assert unit.speed == 2.0
        assert unit.gold_value == 10

    def test_unknown_type_returns_none(self, pool):
        assert pool.spawn_unit(9) is None

    def test_exhaustion_returns_none(self, pool):
        assert pool.spawn_unit(1) is not None
        assert pool.spawn_unit(1) is not None
        assert pool.spawn_unit(1) is None
        assert pool.free_count(1) == 0

    def test_returned_slot_is_reused_with_new_generation(self, pool):
        first = pool.spawn_unit(1)
        key = first.key
        pool.return_unit(first)
        assert not first.alive
        again = pool.spawn_unit(1)
        assert again is first
        assert again.slot == key[1]
        assert again.key != key

    def test_double_return_is_ignored(self, pool):
        unit = pool.spawn_unit(1)
        pool.return_unit(unit)
        pool.return_unit(unit)
        assert pool.free_count(1) == 2

    def test_foreign_unit_is_ignored(self, pool):
        other = UnitPool(pool.archetypes).spawn_unit(1)
        pool.return_unit(other)
        assert other.alive


class TestRoundScaling:
    def test_health_multiplier_applied(self, pool):
        pool.configure_round(5, 2.5)
        unit = pool.spawn_unit(4)
        assert unit.max_health == 250.0
        assert unit.round_index == 5

    def test_reinitialize_restores_current_round_stats(self, pool):
        pool.configure_round(3, 2.0)
        unit = pool.spawn_unit(1)
        unit.max_health = 7.0
        unit.health = 1.0
        pool.reinitialize(unit)
        assert unit.max_health == 20.0
        assert unit.health == 20.0

    @pytest.mark.parametrize(
        ("base", "round_index", "expected"),
        [(10, 0, 10), (10, 10, 12), (50, 14, 64), (10, 500, 30), (10, -3, 10)],
    )
    def test_scaled_gold_value(self, base, round_index, expected):
        assert scaled_gold_value(base, round_index) == expected


class TestRoster:
    def test_live_units_and_clear(self, pool):
        pool.spawn_unit(1)
        pool.spawn_unit(4)
        assert pool.live_count() == 2
        assert [u.unit_type for u in pool.live_units(4)] == [4]
        assert pool.clear() == 2
        assert pool.live_count() == 0

    def test_reset_restores_defaults(self, pool):
        pool.configure_round(8, 3.0)
        pool.spawn_unit(1)
        pool.reset()
        assert pool.live_count() == 0
        assert pool.health_multiplier == 1.0
