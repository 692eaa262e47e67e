# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""DifficultyController — owns the strategy, the difficulty state and composition.

Architecture
------------
For each requested round (1 .. total - 2; the tutorial and the boss
round are fixed) the controller:

  1. refreshes cached signals if they are older than the cadence
  2. asks the strategy for an observation and a decision
  3. applies the decision's health adjustment to ``DifficultyState``
  4. shapes the proportions, density and speed for the game phase
  5. composes a RoundDefinition and credits a small generation reward

Any failure inside that sequence is logged, penalized and answered with
None so the scheduler uses its fallback round.

After a round completes, ``evaluate`` scores it through the strategy
and records the score against the round's composition signature.

The controller is the only writer of the health multiplier; the health
scaler reads it through ``health_multiplier()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from .reward import StrategyHistory
from .shaping import shape_action

if TYPE_CHECKING:
    from wavedirector.config import ControllerSettings
    from wavedirector.simulation.composer import WaveComposer
    from wavedirector.simulation.difficulty import DifficultyState
    from wavedirector.simulation.rounds import RoundDefinition

    from .base import ControllerStrategy
    from .observation import ControllerSignals


class DifficultyController:
    """Strategy-driven round generation and evaluation."""

    def __init__(
        self,
        strategy: ControllerStrategy,
        signals: ControllerSignals,
        composer: WaveComposer,
        settings: ControllerSettings,
        total_rounds: int = 15,
    ) -> None:
        self.strategy = strategy
        self.signals = signals
        self.composer = composer
        self.settings = settings
        self.total_rounds = total_rounds
        self.history = StrategyHistory(settings.history_window, settings.history_memory)
        self.episode = 0
        self._generated: dict[int, RoundDefinition] = {}

    @property
    def state(self) -> DifficultyState:
        return self.signals.state

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def handles(self, round_index: int) -> bool:
        """True for rounds the controller composes."""
        return 1 <= round_index <= self.total_rounds - 2

    # -- Generation -------------------------------------------------------------

    def generate(self, round_index: int) -> RoundDefinition | None:
        """Decide and compose ``round_index``, or None to let the fallback run."""
        if not self.enabled or not self.handles(round_index):
            return None
        try:
            self.signals.refresh()
            observation = self.strategy.observe(round_index)
            action = self.strategy.decide(observation, round_index)

            if action.health_adjustment is not None:
                self.state.apply_adjustment(action.health_adjustment, round_index, self.settings.sensitivity)

            state = self.state
            shaped = shape_action(
                action.proportions,
                round_index,
                player_pressure=self.signals.player_pressure(),
                map_adaptation=self.signals.map_adaptation(),
                progressive_types=state.progressive_types,
                fastest_types=self.signals.fastest_types(1),
            )
            definition = self.composer.compose(
                shaped,
                round_index,
                progressive_types=state.progressive_types,
                map_adaptation=self.signals.map_adaptation(),
                progressive_known=state.has_reliable_data,
            )
        except Exception:
            logger.exception(f"Round generation failed for round {round_index}")
            self.strategy.reward(self.settings.generation_penalty)
            return None

        self.strategy.reward(self.settings.generation_reward)
        self._generated[round_index] = definition
        logger.info(
            f"Controller ({self.strategy.name}) composed round {round_index}: "
            f"{definition.total_units} units, health x{self.state.health_multiplier:.2f}"
        )
        return definition

    # -- Evaluation -------------------------------------------------------------

    def evaluate(
        self,
        round_index: int,
        units_reached_end: int,
        total_units: int,
        player_health_percent: float,
    ) -> float | None:
        """Score a completed round.  Returns None for rounds outside the controlled band."""
        if not self.enabled or not self.handles(round_index):
            return None
        score = self.strategy.evaluate(round_index, units_reached_end, total_units, player_health_percent)
        definition = self._generated.pop(round_index, None)
        if definition is not None:
            self.history.record(definition, score)
        self.episode += 1
        success = units_reached_end / total_units if total_units > 0 else 0.0
        logger.info(f"Round {round_index} evaluated: success {success:.0%}, reward {score:+.2f}")
        return score

    # -- Health multiplier ------------------------------------------------------

    def health_multiplier(self) -> float | None:
        """Current multiplier for the health scaler, None when disabled."""
        if not self.enabled:
            return None
        return self.state.health_multiplier

    def reset(self) -> None:
        self.state.reset()
        self.history.clear()
        self._generated.clear()
        self.episode = 0
        reset = getattr(self.strategy, "reset", None)
        if callable(reset):
            reset()

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.name,
            "enabled": self.enabled,
            "episode": self.episode,
            "state": self.state.to_dict(),
            "history": self.history.to_dict(),
        }
