# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for controller signals, observations and both strategies."""

from __future__ import annotations

import numpy as np
import pytest

from wavedirector.simulation.controller import (
    ACTION_SIZE,
    OBSERVATION_SIZE,
    ActionVector,
    ControllerSignals,
    HeuristicStrategy,
    LearnedPolicyStrategy,
    health_adjustment_for,
)
from wavedirector.simulation.difficulty import DifficultyState
from wavedirector.simulation.economy import Economy
from wavedirector.simulation.path import PathGraph
from wavedirector.simulation.player import PlayerState
from wavedirector.simulation.stats import PerformanceTracker

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RaisingPolicy:
    def __init__(self) -> None:
        self.rewards: list[float] = []

    def predict(self, observation):
        raise RuntimeError("model not loaded")

    def add_reward(self, reward: float) -> None:
        raise RuntimeError("reward sink gone")


class ShortPolicy:
    def predict(self, observation):
        return [0.5, 0.5]

    def add_reward(self, reward: float) -> None:
        pass


@pytest.fixture
def signals() -> ControllerSignals:
    now = [0.0]
    path = PathGraph.straight(20)
    return ControllerSignals(
        DifficultyState(),
        tracker=PerformanceTracker(path.total_nodes),
        player=PlayerState(starting_lives=4),
        economy=Economy(starting_funds=300),
        path=path,
        clock=lambda: now[0],
    )


def _feed(tracker: PerformanceTracker, unit_type: int, nodes, reached: int = 0) -> None:
    for node in nodes:
        tracker.record_spawn(unit_type, 1)
        tracker.record_speed(unit_type, 2.0)
        tracker.record_defeated(unit_type, 1, node)
    for _ in range(reached):
        tracker.record_spawn(unit_type, 1)
        tracker.record_reached_end(unit_type, 1)


# ---------------------------------------------------------------------------
# ActionVector
# ---------------------------------------------------------------------------


class TestActionVector:
    def test_from_array_clamps(self):
        action = ActionVector.from_array([2.0, -1.0, 0.5, 1.5, np.nan, -3.0])
        assert action.proportions == (1.0, 0.0, 0.5)
        assert action.density == 1.0
        assert action.speed == 0.0
        assert action.health_adjustment == -1.0

    def test_missing_health_adjustment_is_none(self):
        assert ActionVector.from_array([0.3, 0.3, 0.4, 0.5, 0.5]).health_adjustment is None

    def test_to_array_layout(self):
        arr = ActionVector((0.2, 0.3, 0.5), 0.6, 0.7, 0.1).to_array()
        assert arr.dtype == np.float32
        assert arr.shape == (ACTION_SIZE,)
        assert arr[5] == pytest.approx(0.1)

    def test_normalized_proportions(self):
        assert ActionVector((0.0, 0.0, 0.0)).normalized_proportions() == pytest.approx([1 / 3] * 3)


# ---------------------------------------------------------------------------
# ControllerSignals / observation
# ---------------------------------------------------------------------------


class TestSignals:
    def test_player_and_money(self, signals):
        signals.player.take_damage(1)
        assert signals.player_health() == 0.75
        assert signals.money_fraction() == pytest.approx(0.3)
        assert signals.player_pressure() == pytest.approx(0.7 * 0.25 + 0.3 * 0.7)

    def test_missing_collaborators_degrade_to_neutral(self):
        bare = ControllerSignals(DifficultyState())
        assert not bare.ready
        assert bare.player_health() == 0.5
        assert bare.money_fraction() == 0.5
        assert bare.progress_pressure() == 0.5
        assert bare.kill_efficiency() == 0.5
        assert bare.fastest_types(2) == [2, 1]

    def test_kill_efficiency(self, signals):
        _feed(signals.tracker, 1, [3, 4, 5], reached=1)
        assert signals.kill_efficiency() == pytest.approx(0.75)

    def test_refresh_respects_cadence(self, signals):
        assert signals.refresh()
        assert not signals.refresh()
        assert signals.refresh(force=True)

    def test_refresh_updates_rankings(self, signals):
        _feed(signals.tracker, 3, [15, 16])
        _feed(signals.tracker, 1, [1, 2])
        signals.refresh(force=True)
        state = signals.state
        assert state.has_reliable_data
        assert state.progressive_types[0] == 3

    def test_path_changed_recomputes_difficulty(self, signals):
        zigzag = PathGraph([[i, i % 2] for i in range(28)])
        signals.path = zigzag
        signals.path_changed()
        assert signals.state.map_difficulty == pytest.approx(1.0)
        assert signals.tracker.total_nodes == 28


class TestObservation:
    def test_layout(self, signals):
        strategy = HeuristicStrategy(signals)
        _feed(signals.tracker, 2, [19, 19])
        obs = strategy.observe(3)
        assert obs.shape == (OBSERVATION_SIZE,)
        assert obs.dtype == np.float32
        assert obs[0] == pytest.approx(3 / 15)
        assert obs[1] == pytest.approx(1.0)
        assert obs[2] == pytest.approx(0.3)
        # type 2 slot: weighted progress, avg node fraction, success, speed
        assert obs[8] == pytest.approx(1.0)
        assert obs[9] == pytest.approx(1.0)
        assert obs[11] == pytest.approx(2.0 / 5.0)
        assert obs[20] == pytest.approx(1.0 / 16.0)

    def test_empty_tracker_leaves_type_slots_zero(self, signals):
        obs = HeuristicStrategy(signals).observe(1)
        assert not obs[4:16].any()


# ---------------------------------------------------------------------------
# HeuristicStrategy
# ---------------------------------------------------------------------------


class TestHeuristicStrategy:
    def test_even_split_without_data(self, signals):
        strategy = HeuristicStrategy(signals)
        action = strategy.decide(strategy.observe(2), 2)
        assert action.proportions == pytest.approx((1 / 3, 1 / 3, 1 / 3))
        assert action.health_adjustment == pytest.approx(0.05)
        assert 0.3 <= action.density <= 0.8
        assert 0.4 <= action.speed <= 0.8

    def test_not_ready_returns_default(self):
        strategy = HeuristicStrategy(ControllerSignals(DifficultyState()))
        assert strategy.decide(np.zeros(OBSERVATION_SIZE, dtype=np.float32), 4) == ActionVector.default()

    def test_late_round_boosts_progressive(self, signals):
        signals.state.progressive_types = [2, 1, 3]
        strategy = HeuristicStrategy(signals)
        action = strategy.decide(strategy.observe(10), 10)
        assert action.proportions[1] == max(action.proportions)

    @pytest.mark.parametrize(
        ("round_index", "pressure", "expected"),
        [(1, 0.7, 0.1), (4, 0.5, 0.1), (7, 0.2, 0.1), (12, 0.65, 0.7), (12, 0.45, 0.4)],
    )
    def test_health_adjustment_table(self, round_index, pressure, expected):
        assert health_adjustment_for(round_index, pressure) == expected

    def test_evaluate_balanced_round_is_positive(self, signals):
        strategy = HeuristicStrategy(signals)
        reward = strategy.evaluate(8, 10, 25, 0.5)
        assert reward > 0
        assert strategy.total_reward == reward

    def test_evaluate_overwhelming_round_is_negative(self, signals):
        strategy = HeuristicStrategy(signals)
        assert strategy.evaluate(8, 24, 25, 0.5) < 0


# ---------------------------------------------------------------------------
# LearnedPolicyStrategy
# ---------------------------------------------------------------------------


class TestLearnedPolicyStrategy:
    def test_uses_policy_output(self, signals, stub_policy):
        strategy = LearnedPolicyStrategy(signals, stub_policy)
        obs = strategy.observe(3)
        action = strategy.decide(obs, 3)
        assert action.proportions == pytest.approx((0.2, 0.6, 0.2))
        assert action.health_adjustment == 0.0
        assert stub_policy.observations[0] is obs
        assert strategy.fallback_count == 0

    def test_rewards_forwarded(self, signals, stub_policy):
        strategy = LearnedPolicyStrategy(signals, stub_policy)
        strategy.reward(0.1)
        strategy.evaluate(8, 10, 25, 0.5)
        assert stub_policy.rewards[0] == 0.1
        assert len(stub_policy.rewards) == 2

    def test_predict_failure_falls_back(self, signals):
        strategy = LearnedPolicyStrategy(signals, RaisingPolicy())
        action = strategy.decide(strategy.observe(2), 2)
        assert action == HeuristicStrategy(signals).decide(strategy.observe(2), 2)
        assert strategy.fallback_count == 1

    def test_wrong_size_falls_back(self, signals):
        strategy = LearnedPolicyStrategy(signals, ShortPolicy())
        strategy.decide(strategy.observe(2), 2)
        assert strategy.fallback_count == 1

    def test_reward_sink_failure_is_contained(self, signals):
        strategy = LearnedPolicyStrategy(signals, RaisingPolicy())
        strategy.reward(1.0)
        assert strategy.total_reward == 1.0
