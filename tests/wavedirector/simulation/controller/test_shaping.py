# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for progressive action shaping."""

from __future__ import annotations

import pytest

from wavedirector.simulation.controller.shaping import normalize, shape_action

pytestmark = pytest.mark.unit

EVEN = (1.0, 1.0, 1.0)


class TestPhases:
    def test_early_density_and_speed(self):
        shaped = shape_action(EVEN, 2, player_pressure=0.0, map_adaptation=0.5, progressive_types=[1, 2, 3])
        assert shaped.density == pytest.approx(0.5 + (2 / 14) * 0.3)
        assert shaped.speed == pytest.approx(0.5)
        assert shaped.proportions == pytest.approx((1 / 3, 1 / 3, 1 / 3))

    def test_early_hard_map_boosts_best_progressive(self):
        shaped = shape_action(EVEN, 1, player_pressure=0.0, map_adaptation=0.7, progressive_types=[1, 2, 3])
        assert shaped.proportions == pytest.approx((1.4 / 3.4, 1 / 3.4, 1 / 3.4))

    def test_mid_clamps_under_pressure(self):
        shaped = shape_action(EVEN, 6, player_pressure=1.0, map_adaptation=0.5, progressive_types=[3, 1, 2])
        assert shaped.density == 0.9
        assert shaped.speed == 0.8
        assert shaped.proportions[2] == pytest.approx(shaped.proportions[0])
        assert shaped.proportions[2] > shaped.proportions[1]

    def test_late_density_capped(self):
        shaped = shape_action(EVEN, 12, player_pressure=0.0, map_adaptation=0.5, progressive_types=[1, 2, 3])
        assert shaped.density == 1.0
        assert shaped.speed == pytest.approx(0.7)

    def test_late_hard_map_favours_type_three(self):
        shaped = shape_action(EVEN, 12, player_pressure=0.0, map_adaptation=0.9, progressive_types=[1, 2, 3])
        assert shaped.proportions[2] == max(shaped.proportions)


class TestNormalization:
    @pytest.mark.parametrize("round_index", [0, 3, 5, 8, 11, 14])
    def test_proportions_sum_to_one(self, round_index):
        shaped = shape_action((0.2, 0.7, 0.1), round_index, 0.4, 0.65, [2, 1, 3], fastest_types=[2])
        assert sum(shaped.proportions) == pytest.approx(1.0)

    def test_all_zero_stays_zero(self):
        shaped = shape_action((0.0, 0.0, 0.0), 2, 0.0, 0.5, [1])
        assert shaped.proportions == (0.0, 0.0, 0.0)

    def test_short_input_padded(self):
        shaped = shape_action((1.0,), 1, 0.0, 0.5, [])
        assert shaped.proportions == pytest.approx((1.0, 0.0, 0.0))

    def test_normalize(self):
        assert normalize([2.0, 1.0, 1.0]) == [0.5, 0.25, 0.25]
