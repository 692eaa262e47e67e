# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""GameSession — builds and drives one wave director session.

Architecture
------------
``GameSession`` owns a ``SessionContext`` holding every shared
collaborator (clock, timer queue, event bus, RNG, tracker, player,
economy, unit pool, path, difficulty state).  Components receive the
pieces they need at construction; nothing is looked up globally.

The host calls ``tick(dt)`` once per frame:

  1. the clock advances (a paused clock does not)
  2. every due timer fires in deadline order
  3. the scheduler polls the preparation countdown and round completion

Unit movement and combat belong to the host.  It reports outcomes
through ``scheduler.on_unit_defeated`` / ``scheduler.on_unit_reached_end``;
a unit reaching the end costs the player a life via the event bus.

``reset()`` cancels every pending continuation, drops buffered
controller deliveries and returns every component to its initial
state.  The event bus and its subscribers survive a reset.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .comms.event_bus import EventBus
from .config import Settings, get_settings
from .simulation.bridge import RoundInjectionBridge
from .simulation.composer import WaveComposer
from .simulation.controller import (
    ControllerSignals,
    DifficultyController,
    HeuristicStrategy,
    LearnedPolicyStrategy,
)
from .simulation.difficulty import DifficultyState, HealthScaler
from .simulation.economy import Economy
from .simulation.interfaces import Policy
from .simulation.path import PathGraph
from .simulation.player import PlayerState
from .simulation.pool import UnitPool
from .simulation.scheduler import RoundScheduler
from .simulation.stats import PerformanceTracker
from .simulation.timers import SimClock, TimerQueue

_DEFAULT_PATH_NODES = 20


@dataclass
class SessionContext:
    """Shared collaborators of one session."""

    settings: Settings
    clock: SimClock
    timers: TimerQueue
    event_bus: EventBus
    rng: random.Random
    tracker: PerformanceTracker
    player: PlayerState
    economy: Economy
    pool: UnitPool
    path: PathGraph
    difficulty: DifficultyState


class GameSession:
    """One wave director session: context, controller, bridge and scheduler."""

    def __init__(
        self,
        settings: Settings | None = None,
        policy: Policy | None = None,
        path: PathGraph | None = None,
        event_bus: EventBus | None = None,
        seed: int | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.seed = seed if seed is not None else self.settings.seed
        self.context = self._build_context(path, event_bus)
        ctx = self.context
        s = self.settings

        self.signals = ControllerSignals(
            ctx.difficulty,
            tracker=ctx.tracker,
            player=ctx.player,
            economy=ctx.economy,
            path=ctx.path,
            clock=lambda: ctx.clock.now,
            money_scale=s.controller.money_scale,
            refresh_interval=s.controller.refresh_interval,
            controllable_types=s.controller.controllable_types,
            total_rounds=s.rounds.total_rounds,
        )
        self.strategy = self._build_strategy(policy)
        self.composer = WaveComposer(ctx.rng)
        self.controller = DifficultyController(
            self.strategy, self.signals, self.composer, s.controller, total_rounds=s.rounds.total_rounds,
        )
        self.health = HealthScaler(s.health, self.controller.health_multiplier)
        self.bridge = RoundInjectionBridge(
            ctx.timers, self.controller, decision_latency=s.rounds.decision_latency, event_bus=ctx.event_bus,
        )
        self.scheduler = RoundScheduler(
            s.rounds,
            ctx.timers,
            ctx.pool,
            ctx.tracker,
            self.health,
            self.bridge,
            event_bus=ctx.event_bus,
            player=ctx.player,
            economy=ctx.economy,
            controller=self.controller,
            rng=ctx.rng,
            boss_types=s.pool.boss_types,
        )

        ctx.event_bus.add_handler("unit_reached_end", self._on_unit_reached_end)
        ctx.event_bus.add_handler("player_defeated", self._on_player_defeated)
        self._started = False

    # -- Construction -----------------------------------------------------------

    def _build_context(self, path: PathGraph | None, event_bus: EventBus | None) -> SessionContext:
        s = self.settings
        clock = SimClock()
        bus = event_bus or EventBus()
        path = path or PathGraph.straight(_DEFAULT_PATH_NODES)
        return SessionContext(
            settings=s,
            clock=clock,
            timers=TimerQueue(clock),
            event_bus=bus,
            rng=random.Random(self.seed),
            tracker=PerformanceTracker(
                path.total_nodes,
                reliability_floor=s.tracker.reliability_floor,
                recent_window=s.tracker.recent_window,
                speed_norm=s.tracker.speed_norm,
            ),
            player=PlayerState(bus, starting_lives=s.player.starting_lives),
            economy=Economy(
                bus,
                starting_funds=s.economy.starting_funds,
                max_funds=s.economy.max_funds,
                allow_debt=s.economy.allow_debt,
                history_limit=s.economy.history_limit,
                clock=lambda: clock.now,
            ),
            pool=UnitPool(
                s.pool.archetypes,
                capacity_per_type=s.pool.capacity_per_type,
                kill_reward_growth=s.economy.kill_reward_growth,
            ),
            path=path,
            difficulty=DifficultyState(
                min_multiplier=s.controller.min_health_multiplier,
                max_multiplier=s.controller.max_health_multiplier,
            ),
        )

    def _build_strategy(self, policy: Policy | None) -> HeuristicStrategy:
        speed_norm = self.settings.tracker.speed_norm
        if self.settings.controller.strategy == "learned":
            if policy is not None:
                logger.info("Using learned policy strategy")
                return LearnedPolicyStrategy(self.signals, policy, speed_norm=speed_norm)
            logger.warning("Learned strategy configured without a policy, using heuristic")
        return HeuristicStrategy(self.signals, speed_norm=speed_norm)

    # -- Accessors --------------------------------------------------------------

    @property
    def clock(self) -> SimClock:
        return self.context.clock

    @property
    def event_bus(self) -> EventBus:
        return self.context.event_bus

    @property
    def pool(self) -> UnitPool:
        return self.context.pool

    @property
    def player(self) -> PlayerState:
        return self.context.player

    @property
    def economy(self) -> Economy:
        return self.context.economy

    @property
    def tracker(self) -> PerformanceTracker:
        return self.context.tracker

    @property
    def started(self) -> bool:
        return self._started

    # -- Lifecycle --------------------------------------------------------------

    def start(self) -> None:
        """Open the preparation countdown for round 0."""
        if self._started:
            return
        self._started = True
        logger.info(
            f"Session started: {self.settings.rounds.total_rounds} rounds, "
            f"strategy {self.strategy.name}, seed {self.seed}"
        )
        self.scheduler.start()

    def tick(self, dt: float) -> int:
        """Advance the session by ``dt`` seconds.  Returns the number of timers fired."""
        self.context.clock.advance(dt)
        fired = self.context.timers.run_due()
        self.scheduler.update()
        return fired

    def pause(self) -> None:
        self.context.clock.pause()
        logger.info(f"Session paused at t={self.context.clock.now:.2f}")

    def resume(self) -> None:
        self.context.clock.resume()
        logger.info(f"Session resumed at t={self.context.clock.now:.2f}")

    def reset(self) -> None:
        """Cancel all pending work and return to a fresh session."""
        ctx = self.context
        cancelled = ctx.timers.cancel_all()
        self.scheduler.reset()
        ctx.pool.reset()
        ctx.tracker.reset()
        ctx.economy.reset()
        ctx.player.reset()
        self.controller.reset()
        ctx.clock.reset()
        ctx.rng.seed(self.seed)
        logger.info(f"Session reset ({cancelled} pending timers cancelled)")
        if self._started:
            self.scheduler.start()

    def close(self) -> None:
        """Detach from the event bus and drop pending work."""
        self.context.timers.cancel_all()
        self.event_bus.remove_handler("unit_reached_end", self._on_unit_reached_end)
        self.event_bus.remove_handler("player_defeated", self._on_player_defeated)

    def to_dict(self) -> dict:
        return {
            "time": round(self.context.clock.now, 3),
            "paused": self.context.clock.paused,
            "scheduler": self.scheduler.get_state(),
            "controller": self.controller.to_dict(),
            "economy": self.context.economy.to_dict(),
            "lives": self.context.player.current_lives(),
            "tracker": self.context.tracker.to_dict(),
        }

    # -- Event handlers ---------------------------------------------------------

    def _on_unit_reached_end(self, event_type: str, data: dict[str, Any]) -> None:
        self.context.player.take_damage(self.settings.player.damage_per_leak, reason="unit_reached_end")

    def _on_player_defeated(self, event_type: str, data: dict[str, Any]) -> None:
        self.scheduler.declare_defeat(data.get("reason", "player_defeated"))
