# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""LearnedPolicyStrategy — delegates decisions to an external policy.

The policy is opaque: it receives the observation vector and returns
six raw action values, and it is credited every reward the controller
computes.  Training happens elsewhere.

If the policy raises or returns something that is not a six-value
vector, the decision falls back to the heuristic for that round.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from .base import ACTION_SIZE, ActionVector
from .heuristic import HeuristicStrategy

if TYPE_CHECKING:
    from wavedirector.simulation.interfaces import Policy

    from .observation import ControllerSignals


class LearnedPolicyStrategy(HeuristicStrategy):
    """Policy-backed strategy with heuristic fallback."""

    name = "learned"

    def __init__(self, signals: ControllerSignals, policy: Policy, speed_norm: float = 5.0) -> None:
        super().__init__(signals, speed_norm=speed_norm)
        self.policy = policy
        self.fallback_count = 0

    def decide(self, observation: np.ndarray, round_index: int) -> ActionVector:
        try:
            raw = np.asarray(self.policy.predict(observation), dtype=np.float64).ravel()
        except Exception as exc:
            logger.warning(f"Policy predict failed for round {round_index}: {exc}, using heuristic")
            self.fallback_count += 1
            return super().decide(observation, round_index)

        if raw.size != ACTION_SIZE:
            logger.warning(
                f"Policy returned {raw.size} values for round {round_index}, "
                f"expected {ACTION_SIZE}, using heuristic"
            )
            self.fallback_count += 1
            return super().decide(observation, round_index)
        return ActionVector.from_array(raw)

    def reward(self, value: float) -> None:
        super().reward(value)
        try:
            self.policy.add_reward(value)
        except Exception:
            logger.exception("Policy add_reward failed")
