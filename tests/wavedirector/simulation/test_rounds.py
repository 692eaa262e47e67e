# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for RoundDefinition and the fixed round generators."""

from __future__ import annotations

import random

import pytest

from wavedirector.simulation.errors import MalformedRoundError
from wavedirector.simulation.rounds import (
    RoundDefinition,
    SpawnGroup,
    boss_round,
    fallback_round,
    tutorial_round,
)

pytestmark = pytest.mark.unit


def _round(**overrides) -> RoundDefinition:
    fields = dict(
        name="Test",
        groups=(SpawnGroup(1, 4), SpawnGroup(2, 2, 1.0, 0.5), SpawnGroup(1, 1)),
        spawn_interval=1.0,
        reward=120,
        time_limit=60.0,
    )
    fields.update(overrides)
    return RoundDefinition(**fields)


class TestRoundDefinition:
    def test_total_units_and_counts(self):
        r = _round()
        assert r.total_units == 7
        assert r.counts_by_type() == {1: 5, 2: 2}
        assert r.unit_types == [1, 2]

    def test_groups_become_tuple(self):
        r = _round(groups=[SpawnGroup(1, 1)])
        assert isinstance(r.groups, tuple)

    def test_interval_falls_back_to_round_interval(self):
        r = _round()
        assert r.interval_for(r.groups[0]) == 1.0
        assert r.interval_for(r.groups[1]) == 0.5

    def test_empty_groups_is_malformed(self):
        with pytest.raises(MalformedRoundError):
            _round(groups=())

    def test_negative_fields_are_malformed(self):
        with pytest.raises(MalformedRoundError):
            _round(reward=-1)
        with pytest.raises(MalformedRoundError):
            SpawnGroup(1, -3)

    def test_malformed_is_a_value_error(self):
        with pytest.raises(ValueError):
            _round(groups=())


class TestSerialization:
    def test_dict_round_trip(self):
        r = _round(is_boss=True)
        assert RoundDefinition.from_dict(r.to_dict()) == r

    def test_json_is_stable(self):
        assert _round().to_json() == _round().to_json()

    def test_from_dict_missing_groups(self):
        with pytest.raises(MalformedRoundError):
            RoundDefinition.from_dict({"name": "x"})

    def test_from_dict_null_groups(self):
        with pytest.raises(MalformedRoundError):
            RoundDefinition.from_dict({"groups": None})

    def test_from_dict_bad_group(self):
        with pytest.raises(MalformedRoundError):
            RoundDefinition.from_dict({"groups": [{"unit_type": "a", "count": 1}]})

    def test_coerce_rejects_other_payloads(self):
        with pytest.raises(MalformedRoundError):
            RoundDefinition.coerce(None)
        with pytest.raises(MalformedRoundError):
            RoundDefinition.coerce([1, 2, 3])

    def test_coerce_passes_definitions_through(self):
        r = _round()
        assert RoundDefinition.coerce(r) is r


class TestTutorialRound:
    def test_nine_units_in_three_groups(self):
        r = tutorial_round()
        assert r.total_units == 9
        assert [g.unit_type for g in r.groups] == [1, 2, 3]
        assert [g.delay_before_group for g in r.groups] == [0.0, 1.5, 3.0]
        assert r.spawn_interval == 1.2
        assert r.reward == 100
        assert r.time_limit == 60.0

    def test_identical_every_time(self):
        assert tutorial_round().to_json() == tutorial_round().to_json()


class TestBossRound:
    def test_minions_then_one_boss(self):
        r = boss_round(14, random.Random(1))
        assert r.is_boss
        assert r.name == "ROUND 15 - BOSS"
        assert [(g.unit_type, g.count) for g in r.groups[:3]] == [(2, 8), (3, 6), (1, 10)]
        boss = r.groups[-1]
        assert boss.count == 1
        assert boss.unit_type in (4, 5, 6)
        assert r.total_units == 25

    def test_boss_type_from_given_pool(self):
        r = boss_round(9, random.Random(3), boss_types=(5,))
        assert r.groups[-1].unit_type == 5


class TestFallbackRound:
    @pytest.mark.parametrize("idx", [1, 4, 5, 9, 10, 13])
    def test_total_matches_band(self, idx):
        r = fallback_round(idx)
        assert r.total_units == min(45, max(10, 10 + idx * 4))

    def test_early_rounds_split_evenly(self):
        r = fallback_round(2)
        assert [g.unit_type for g in r.groups] == [1, 2, 3]
        assert r.total_units == 18
        assert [g.count for g in r.groups] == [6, 6, 6]

    def test_drift_folded_into_first_group(self):
        r = fallback_round(1)
        assert [g.count for g in r.groups] == [6, 4, 4]

    def test_late_rounds_lead_with_fast_units(self):
        r = fallback_round(11)
        assert r.groups[0].unit_type == 2

    def test_interval_and_reward_bounds(self):
        r = fallback_round(13)
        assert r.spawn_interval == pytest.approx(0.8)
        assert r.reward == 200
        assert r.name == "Round 14 (Fallback)"

    def test_deterministic(self):
        assert fallback_round(6).to_json() == fallback_round(6).to_json()
