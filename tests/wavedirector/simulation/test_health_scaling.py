# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for HealthScaler and DifficultyState."""

from __future__ import annotations

import math

import pytest

from wavedirector.config import HealthSettings
from wavedirector.simulation.difficulty import DifficultyState, HealthScaler

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# HealthScaler
# ---------------------------------------------------------------------------


class TestHealthScaler:
    def test_round_zero_is_exactly_one(self):
        scaler = HealthScaler(controller_multiplier=lambda: 9.0)
        assert scaler.multiplier_for(0, 0.9) == 1.0

    def test_negative_round_is_base(self):
        scaler = HealthScaler(HealthSettings(base_multiplier=1.5, max_multiplier=5.0))
        assert scaler.multiplier_for(-1) == 1.5

    def test_early_round_mid_success(self):
        # base 1 + 2 * 0.15, phase 1.0, bonus 0.05 + 3 * 0.01
        assert HealthScaler().multiplier_for(3, 0.5) == pytest.approx(1.3 * 1.08)

    def test_late_round_high_success(self):
        # factor 12 * 1.4, phase 1.5, late bonus 0.3
        base = 1.0 + (12 * 1.4 - 1.0) * 0.15
        assert HealthScaler().multiplier_for(12, 0.8) == pytest.approx(base * 1.5 * 1.3)

    def test_low_success_never_below_base(self):
        assert HealthScaler().multiplier_for(2, 0.1) == 1.0

    def test_clamped_to_max(self):
        scaler = HealthScaler(controller_multiplier=lambda: 5.0)
        assert scaler.multiplier_for(14, 0.9) == 12.0

    def test_controller_multiplier_applied(self):
        plain = HealthScaler().multiplier_for(4, 0.5)
        doubled = HealthScaler(controller_multiplier=lambda: 2.0).multiplier_for(4, 0.5)
        assert doubled == pytest.approx(plain * 2.0)

    @pytest.mark.parametrize("value", [None, math.nan, math.inf, 0.0, -1.0])
    def test_unusable_controller_multiplier_is_one(self, value):
        assert HealthScaler(controller_multiplier=lambda: value).controller_multiplier() == 1.0

    @pytest.mark.parametrize(
        ("success", "round_index", "bonus"),
        [
            (0.2, 3, -0.15),
            (0.2, 10, -0.08),
            (0.8, 3, 0.2),
            (0.8, 10, 0.3),
            (0.5, 6, 0.11),
            (0.65, 6, 0.0),
        ],
    )
    def test_adaptive_bonus(self, success, round_index, bonus):
        assert HealthScaler.adaptive_bonus(success, round_index) == pytest.approx(bonus)

    def test_adaptive_bonus_capped(self):
        assert HealthScaler.adaptive_bonus(0.5, 100) == 0.4

    @pytest.mark.parametrize("controller", [None, 0.7, 1.0, 2.5])
    def test_non_decreasing_with_round_at_mid_success(self, controller):
        scaler = HealthScaler(controller_multiplier=None if controller is None else (lambda: controller))
        values = [scaler.multiplier_for(i, 0.5) for i in range(40)]
        assert all(later >= earlier for earlier, later in zip(values, values[1:]))
        assert values[0] == 1.0
        assert values[-1] <= 12.0

    def test_phase_multiplier(self):
        scaler = HealthScaler()
        assert [scaler.phase_multiplier(i) for i in (4, 5, 9, 10)] == [1.0, 1.2, 1.2, 1.5]


# ---------------------------------------------------------------------------
# DifficultyState
# ---------------------------------------------------------------------------


class TestDifficultyState:
    def test_small_early_adjustment(self):
        state = DifficultyState()
        assert state.apply_adjustment(1.0, 1, 0.3) == pytest.approx(1.03)

    def test_early_ceiling(self):
        state = DifficultyState()
        for _ in range(200):
            state.apply_adjustment(1.0, 1, 0.3)
        assert state.health_multiplier == 2.0

    def test_floor(self):
        state = DifficultyState()
        for _ in range(10):
            state.apply_adjustment(-1.0, 13, 0.3)
        assert state.health_multiplier == 0.4

    def test_pressure_and_kill_efficiency_nudges(self):
        state = DifficultyState(progress_pressure=0.8, kill_efficiency=0.9)
        assert state.apply_adjustment(0.0, 10, 0.3) == pytest.approx(1.0 + 0.05 + 0.03)

    def test_mid_pressure_nudge(self):
        state = DifficultyState(progress_pressure=0.6)
        assert state.apply_adjustment(0.0, 10, 0.3) == pytest.approx(1.02)

    def test_ceiling_respects_configured_max(self):
        assert DifficultyState().ceiling_for(20) == 15.0
        assert DifficultyState(max_multiplier=10.0).ceiling_for(20) == 10.0

    def test_aggressiveness_bands(self):
        values = [DifficultyState.aggressiveness_for(i) for i in (0, 3, 6, 9, 12)]
        assert values == [0.1, 0.3, 0.5, 1.0, 1.8]

    def test_needs_refresh(self):
        state = DifficultyState()
        assert state.needs_refresh(0.0, 3.0)
        state.last_refresh = 10.0
        assert not state.needs_refresh(12.0, 3.0)
        assert state.needs_refresh(13.5, 3.0)

    def test_reset_keeps_map_difficulty(self):
        state = DifficultyState(health_multiplier=3.0, map_difficulty=0.8, progressive_types=[3, 1, 2])
        state.reset()
        assert state.health_multiplier == 1.0
        assert state.progressive_types == [1, 2, 3]
        assert state.map_difficulty == 0.8
