# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for Settings — defaults, env overrides and validation."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from wavedirector.config import HealthSettings, RoundSettings, Settings, get_settings

pytestmark = pytest.mark.unit


class TestDefaults:
    def test_round_defaults(self, settings):
        assert settings.rounds.total_rounds == 15
        assert settings.rounds.preparation_time == 10.0
        assert settings.rounds.victory_grace == 3.0
        assert settings.rounds.completion_bonus == 8
        assert settings.rounds.tutorial_reward == 100

    def test_controller_defaults(self, settings):
        assert settings.controller.strategy == "heuristic"
        assert settings.controller.min_health_multiplier == 0.4
        assert settings.controller.max_health_multiplier == 16.0
        assert settings.controller.sensitivity == 0.3

    def test_tracker_and_economy_defaults(self, settings):
        assert settings.tracker.reliability_floor == 2
        assert settings.tracker.recent_window == 7
        assert settings.economy.starting_funds == 300
        assert settings.economy.max_funds == 99999
        assert settings.economy.allow_debt is False
        assert settings.player.starting_lives == 5

    def test_default_archetypes_cover_basic_and_boss_types(self, settings):
        archetypes = settings.pool.archetypes
        assert set(archetypes) == {1, 2, 3, 4, 5, 6}
        assert set(settings.pool.boss_types) <= set(archetypes)


class TestEnvOverrides:
    def test_nested_override(self):
        env = {
            "WAVEDIRECTOR_ROUNDS__TOTAL_ROUNDS": "20",
            "WAVEDIRECTOR_CONTROLLER__STRATEGY": "learned",
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings(_env_file=None)
        assert s.rounds.total_rounds == 20
        assert s.controller.strategy == "learned"

    def test_seed_override(self):
        with patch.dict(os.environ, {"WAVEDIRECTOR_SEED": "42"}, clear=True):
            s = Settings(_env_file=None)
        assert s.seed == 42

    def test_invalid_strategy_rejected(self):
        with patch.dict(os.environ, {"WAVEDIRECTOR_CONTROLLER__STRATEGY": "oracle"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        with patch.dict(os.environ, {}, clear=True):
            assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestValidation:
    def test_max_below_base_rejected(self):
        with pytest.raises(ValidationError):
            HealthSettings(base_multiplier=2.0, max_multiplier=1.0)

    def test_phase_ends_out_of_order_rejected(self):
        with pytest.raises(ValidationError):
            HealthSettings(early_phase_end=8, mid_phase_end=4)

    def test_request_fraction_bounded(self):
        with pytest.raises(ValidationError):
            RoundSettings(request_fraction=1.5)

    def test_total_rounds_minimum(self):
        with pytest.raises(ValidationError):
            RoundSettings(total_rounds=1)
