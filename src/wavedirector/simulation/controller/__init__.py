# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Difficulty controller — strategies, signals, shaping and rewards."""

from .base import ACTION_SIZE, OBSERVATION_SIZE, ActionVector, ControllerStrategy
from .director import DifficultyController
from .heuristic import HeuristicStrategy, health_adjustment_for
from .learned import LearnedPolicyStrategy
from .observation import ControllerSignals, ObservationBuilder
from .reward import StrategyHistory, compute_reward, strategy_signature
from .shaping import ShapedAction, shape_action

__all__ = [
    "ACTION_SIZE",
    "OBSERVATION_SIZE",
    "ActionVector",
    "ControllerSignals",
    "ControllerStrategy",
    "DifficultyController",
    "HeuristicStrategy",
    "LearnedPolicyStrategy",
    "ObservationBuilder",
    "ShapedAction",
    "StrategyHistory",
    "compute_reward",
    "health_adjustment_for",
    "shape_action",
    "strategy_signature",
]
