# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""RoundScheduler — round lifecycle, spawning and completion.

Architecture
------------
The scheduler drives a session through its rounds:

  PREPARING -> SPAWNING -> ACTIVE -> BETWEEN_ROUNDS -> SPAWNING -> ... -> VICTORY
                                                   (any running state) -> DEFEAT

Round start picks the definition (tutorial for round 0, boss for the last
round, otherwise the controller's delivery or the deterministic fallback),
fixes the round's health multiplier, and arms the spawn chain on the
timer queue.  Groups are emitted in order: wait ``delay_before_group``,
then spawn one unit, wait its interval, repeat.  A spawn the pool cannot
fill is skipped.

A round completes when every group has been emitted and no live unit
remains.  Both removal callbacks and the per-tick poll can observe that
condition, so completion is latched: the first observer completes the
round and every later one is a no-op.

On completion the scheduler grants the round reward plus a flat bonus,
lets the controller score rounds 1 .. total-2, and either opens the
preparation countdown for the next round or, after the last round,
declares victory once a short grace period has passed.

The preparation countdown runs on clock deltas read in ``update()``, so a
paused clock freezes it.  Partway through, the next round is requested
from the controller through the injection bridge; whatever has arrived
when the countdown reaches zero is used.

Events published:
  - ``round_started`` / ``round_completed``
  - ``preparation_started`` / ``preparation_time_updated``
  - ``unit_spawned`` / ``unit_defeated`` / ``unit_reached_end``
  - ``state_change`` / ``victory`` / ``defeat``
  - ``consistency_repaired``
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Iterable

from loguru import logger

from .interfaces import UnitRoster
from .lifecycle import RoundLifecycle, RoundStateMachine
from .rounds import RoundDefinition, boss_round, fallback_round, tutorial_round

if TYPE_CHECKING:
    from wavedirector.comms.event_bus import EventBus
    from wavedirector.config import RoundSettings

    from .bridge import RoundInjectionBridge
    from .controller.director import DifficultyController
    from .difficulty import HealthScaler
    from .interfaces import EconomyReader, PlayerStateReader, Spawner
    from .pool import UnitHandle
    from .stats import PerformanceTracker
    from .timers import TimerHandle, TimerQueue

# Passive income curve
_INCOME_PERIOD = 1.0             # seconds between in-round income grants
_INCOME_MIN_FACTOR = 0.5
_INCOME_MAX_FACTOR = 2.0

# Player health assumed when no player collaborator is attached
_DEFAULT_HEALTH = 1.0


class RoundScheduler:
    """Round lifecycle FSM, spawn emission and completion."""

    def __init__(
        self,
        settings: RoundSettings,
        timers: TimerQueue,
        spawner: Spawner,
        tracker: PerformanceTracker,
        health: HealthScaler,
        bridge: RoundInjectionBridge,
        event_bus: EventBus | None = None,
        player: PlayerStateReader | None = None,
        economy: EconomyReader | None = None,
        controller: DifficultyController | None = None,
        rng: random.Random | None = None,
        boss_types: Iterable[int] = (4, 5, 6),
    ) -> None:
        self.settings = settings
        self._timers = timers
        self.spawner = spawner
        self.tracker = tracker
        self.health = health
        self.bridge = bridge
        self._event_bus = event_bus
        self.player = player
        self.economy = economy
        self.controller = controller
        self.rng = rng or random.Random()
        self.boss_types = tuple(boss_types)

        self.machine = RoundStateMachine(clock=lambda: self._timers.clock.now)
        self.machine.add_listener(self._on_transition)
        self.bridge.attach(
            preparation_target=lambda: self._prep_target,
            current_round=lambda: self._round_index,
            installer=self._install,
        )

        self._round_timers: list[TimerHandle] = []
        self._prep_timers: list[TimerHandle] = []
        self._sweep_timer: TimerHandle | None = None
        self._installed: dict[int, RoundDefinition] = {}
        self._reset_state()

    # -- Read-only view ---------------------------------------------------------

    @property
    def state(self) -> RoundLifecycle:
        return self.machine.state

    @property
    def round_index(self) -> int:
        return self._round_index

    @property
    def current_round(self) -> RoundDefinition | None:
        return self._current

    @property
    def live_unit_count(self) -> int:
        return len(self._live)

    @property
    def live_units(self) -> list[UnitHandle]:
        return list(self._live.values())

    @property
    def preparation_time_left(self) -> float:
        return max(0.0, self._prep_remaining) if self._prep_target is not None else 0.0

    @property
    def preparation_target(self) -> int | None:
        return self._prep_target

    @property
    def round_health_multiplier(self) -> float:
        return self._round_multiplier

    @property
    def completions(self) -> int:
        """Number of rounds completed this session."""
        return self._completions

    def get_state(self) -> dict:
        """Serializable snapshot for UIs and logs."""
        return {
            "state": self.state.value,
            "round_index": self._round_index,
            "total_rounds": self.settings.total_rounds,
            "round_name": self._current.name if self._current else "",
            "total_units": self._current.total_units if self._current else 0,
            "spawned": self._spawned,
            "skipped": self._skipped,
            "defeated": self._defeated,
            "reached_end": self._reached_end,
            "live_units": len(self._live),
            "health_multiplier": round(self._round_multiplier, 4),
            "preparation_time_left": round(self.preparation_time_left, 2),
        }

    # -- Session ----------------------------------------------------------------

    def start(self) -> None:
        """Begin a session: arm the consistency sweep and open preparation for round 0."""
        self._arm_sweep()
        self.request_preparation_phase()

    def update(self) -> None:
        """Per-tick poll: preparation countdown, orphan cleanup and completion check."""
        if self.state.is_terminal:
            return
        if self._prep_target is not None:
            self._tick_preparation()
        elif self.state is RoundLifecycle.ACTIVE:
            self._prune_orphans()
            self._check_completion()

    # -- Rounds -----------------------------------------------------------------

    def start_next_round(self) -> bool:
        """Start the next round now.  Returns False if one is already running."""
        state = self.state
        if state.is_running or state.is_terminal:
            logger.warning(f"Cannot start a round while {state.value}")
            return False
        if self._round_index >= self.settings.total_rounds - 1:
            self._declare_victory()
            return False

        self._cancel(self._prep_timers)
        self._prep_target = None
        self.verify_consistency()
        if self._live:
            logger.warning(f"Clearing {len(self._live)} leftover units before the next round")
            self._release_all()

        self._round_index += 1
        index = self._round_index
        definition = self._definition_for(index)
        self._begin_round(index, definition)
        return True

    def request_preparation_phase(self) -> bool:
        """Open the timed countdown before the next round."""
        state = self.state
        if state.is_running or state.is_terminal:
            return False
        target = self._round_index + 1
        if target >= self.settings.total_rounds:
            return False

        self._cancel(self._prep_timers)
        self._prep_target = target
        self._prep_remaining = self.settings.preparation_time
        self._prep_last = self._timers.clock.now
        self._publish("preparation_started", {
            "round_index": target,
            "duration": self.settings.preparation_time,
        })

        if self.controller is not None and self.controller.handles(target):
            delay = self.settings.preparation_time * self.settings.request_fraction
            if delay <= 0:
                self.bridge.request_for_round(target)
            else:
                self._prep_timers.append(self._timers.call_later(
                    delay, lambda: self.bridge.request_for_round(target), name=f"request:{target}",
                ))

        if self.settings.preparation_time <= 0:
            self.start_next_round()
        return True

    # -- Unit callbacks ---------------------------------------------------------

    def notify_unit_removed(
        self,
        unit: UnitHandle,
        reached_end: bool = False,
        max_node_reached: int | None = None,
    ) -> bool:
        """A live unit left play.  Returns False for units this round does not own."""
        if self.state.is_terminal:
            return False
        tracked = self._live.pop(unit.key, None)
        if tracked is None:
            logger.debug(f"Ignoring removal of untracked unit {unit.key}")
            return False

        index = self._round_index
        if reached_end:
            self._reached_end += 1
            self.tracker.record_reached_end(unit.unit_type, index)
            self._publish("unit_reached_end", {"unit_type": unit.unit_type, "round_index": index})
        else:
            node = unit.max_node_reached if max_node_reached is None else max_node_reached
            self._defeated += 1
            self.tracker.record_defeated(unit.unit_type, index, node)
            if self.economy is not None and unit.gold_value > 0:
                self.economy.grant(unit.gold_value, f"unit_kill:{unit.unit_type}")
            self._publish("unit_defeated", {
                "unit_type": unit.unit_type,
                "round_index": index,
                "max_node_reached": node,
            })

        self.spawner.return_unit(unit)
        self._check_completion()
        return True

    def on_unit_defeated(self, unit: UnitHandle, max_node_reached: int | None = None) -> bool:
        return self.notify_unit_removed(unit, reached_end=False, max_node_reached=max_node_reached)

    def on_unit_reached_end(self, unit: UnitHandle) -> bool:
        return self.notify_unit_removed(unit, reached_end=True)

    # -- Defeat / reset ---------------------------------------------------------

    def declare_defeat(self, reason: str = "player_defeated") -> bool:
        if self.state.is_terminal:
            return False
        self._cancel(self._round_timers)
        self._cancel(self._prep_timers)
        self._prep_target = None
        self._release_all()
        self.machine.transition(RoundLifecycle.DEFEAT)
        logger.info(f"Defeat in round {self._round_index} ({reason})")
        self._publish("defeat", {
            "round_index": self._round_index,
            "rounds_completed": self._completions,
            "reason": reason,
        })
        return True

    def reset(self) -> None:
        """Cancel every pending continuation and return to the pre-session state."""
        self._cancel(self._round_timers)
        self._cancel(self._prep_timers)
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()
            self._sweep_timer = None
        self.bridge.clear()
        self._release_all()
        self._installed.clear()
        self._reset_state()
        self.machine.reset()
        self._publish("state_change", {"from": None, "to": self.state.value, "round_index": -1})

    # -- Consistency ------------------------------------------------------------

    def verify_consistency(self) -> int:
        """Re-initialize live units whose type shows more than one max health.

        Returns the number of units repaired.
        """
        if not isinstance(self.spawner, UnitRoster) or not self._live:
            return 0
        by_type: dict[int, list[UnitHandle]] = {}
        for unit in self._live.values():
            by_type.setdefault(unit.unit_type, []).append(unit)

        repaired = 0
        for unit_type, units in by_type.items():
            distinct = {round(u.max_health, 6) for u in units}
            if len(distinct) <= 1:
                continue
            logger.error(
                f"Inconsistent max health for unit type {unit_type}: "
                f"{len(distinct)} distinct values across {len(units)} units, re-initializing"
            )
            for unit in units:
                self.spawner.reinitialize(unit)
            repaired += len(units)
            self._publish("consistency_repaired", {"unit_type": unit_type, "units": len(units)})
        return repaired

    # -- Internal: round flow ---------------------------------------------------

    def _definition_for(self, index: int) -> RoundDefinition:
        if index == 0:
            return tutorial_round(self.settings.tutorial_reward)
        if index == self.settings.total_rounds - 1:
            return boss_round(index, self.rng, self.boss_types)

        definition = self._installed.pop(index, None) or self.bridge.consume_if_pending(index)
        if definition is not None and definition.total_units > 0:
            return definition
        if definition is not None:
            logger.warning(f"Controller round {index} has no units, using fallback")
        else:
            logger.info(f"No controller round ready for round {index}, using fallback")
        return fallback_round(index)

    def _begin_round(self, index: int, definition: RoundDefinition) -> None:
        self._cancel(self._round_timers)
        self._current = definition
        self._spawned = self._skipped = self._defeated = self._reached_end = 0
        self._all_emitted = False
        self._completion_latched = False
        self._round_started_at = self._timers.clock.now
        self._health_at_start = self._player_health()
        self._round_multiplier = self.health.multiplier_for(index, self._health_at_start)
        self.spawner.configure_round(index, self._round_multiplier)

        self.machine.transition(RoundLifecycle.SPAWNING)
        logger.info(
            f"Round {index} started: {definition.name!r}, {definition.total_units} units, "
            f"health x{self._round_multiplier:.2f}"
        )
        self._publish("round_started", {
            "round_index": index,
            "name": definition.name,
            "total_units": definition.total_units,
            "reward": definition.reward,
            "is_boss": definition.is_boss,
            "health_multiplier": self._round_multiplier,
            "definition": definition.to_dict(),
        })

        self._begin_group(0)
        if self.settings.income_rate > 0:
            self._round_timers.append(
                self._timers.call_later(_INCOME_PERIOD, self._income_tick, name="income"),
            )

    def _begin_group(self, group_index: int) -> None:
        definition = self._current
        if definition is None:
            return
        if group_index >= len(definition.groups):
            self._on_all_emitted()
            return
        group = definition.groups[group_index]
        self._round_timers.append(self._timers.call_later(
            group.delay_before_group,
            lambda: self._emit(group_index, 0),
            name=f"group:{group_index}",
        ))

    def _emit(self, group_index: int, emitted: int) -> None:
        definition = self._current
        if definition is None or not self.state.is_running:
            return
        group = definition.groups[group_index]
        if emitted >= group.count:
            self._begin_group(group_index + 1)
            return

        unit = self.spawner.spawn_unit(group.unit_type)
        if unit is None:
            self._skipped += 1
            logger.warning(f"Spawn skipped for unit type {group.unit_type} in round {self._round_index}")
        else:
            self._live[unit.key] = unit
            self._spawned += 1
            self.tracker.record_spawn(unit.unit_type, self._round_index)
            self.tracker.record_speed(unit.unit_type, unit.speed, self._round_index)
            self._publish("unit_spawned", {
                "unit_type": unit.unit_type,
                "round_index": self._round_index,
                "max_health": unit.max_health,
            })

        self._round_timers.append(self._timers.call_later(
            definition.interval_for(group),
            lambda: self._emit(group_index, emitted + 1),
            name=f"spawn:{group_index}",
        ))

    def _on_all_emitted(self) -> None:
        self._all_emitted = True
        if self.state is RoundLifecycle.SPAWNING:
            self.machine.transition(RoundLifecycle.ACTIVE)
        self._check_completion()

    def _check_completion(self) -> bool:
        if self.state is not RoundLifecycle.ACTIVE:
            return False
        if self._completion_latched or not self._all_emitted or self._live:
            return False
        self._completion_latched = True
        self._complete_round()
        return True

    def _complete_round(self) -> None:
        index = self._round_index
        definition = self._current
        self._cancel(self._round_timers)
        self._completions += 1

        if self.economy is not None and definition is not None:
            self.economy.grant(definition.reward, f"round_reward:{index}")
            if self.settings.completion_bonus > 0:
                self.economy.grant(self.settings.completion_bonus, "completion_bonus")

        total = definition.total_units if definition is not None else 0
        duration = self._timers.clock.now - self._round_started_at
        logger.info(
            f"Round {index} complete: {self._defeated} defeated, {self._reached_end} reached the end, "
            f"{self._skipped} skipped in {duration:.1f}s"
        )
        self._publish("round_completed", {
            "round_index": index,
            "total_units": total,
            "spawned": self._spawned,
            "defeated": self._defeated,
            "reached_end": self._reached_end,
            "skipped": self._skipped,
            "duration": round(duration, 3),
        })

        if self.controller is not None:
            self.controller.evaluate(index, self._reached_end, total, self._player_health())

        self.machine.transition(RoundLifecycle.BETWEEN_ROUNDS)
        if index < self.settings.total_rounds - 1:
            self.request_preparation_phase()
        else:
            self._round_timers.append(self._timers.call_later(
                self.settings.victory_grace, self._declare_victory, name="victory",
            ))

    def _declare_victory(self) -> None:
        if self.state.is_terminal:
            return
        if not self.machine.transition(RoundLifecycle.VICTORY):
            return
        self._cancel(self._round_timers)
        self._cancel(self._prep_timers)
        logger.info(f"Victory after {self._completions} rounds")
        self._publish("victory", {"rounds_completed": self._completions})

    # -- Internal: preparation --------------------------------------------------

    def _tick_preparation(self) -> None:
        now = self._timers.clock.now
        delta = now - self._prep_last
        self._prep_last = now
        if delta <= 0:
            return
        self._prep_remaining -= delta
        self._publish("preparation_time_updated", {
            "round_index": self._prep_target,
            "time_left": max(0.0, self._prep_remaining),
        })
        if self._prep_remaining <= 0:
            self.start_next_round()

    def _install(self, index: int, definition: RoundDefinition) -> None:
        self._installed[index] = definition
        logger.debug(f"Installed controller round {index} ({definition.total_units} units)")

    # -- Internal: income / sweep -----------------------------------------------

    def _income_tick(self) -> None:
        if not self.state.is_running:
            return
        duration = self._timers.base_time - self._round_started_at
        if duration >= self.settings.income_min_seconds and self.economy is not None:
            amount = self.passive_income(duration, self._player_health())
            if amount > 0:
                self.economy.grant(amount, "passive_income")
        self._round_timers.append(
            self._timers.call_later(_INCOME_PERIOD, self._income_tick, name="income"),
        )

    def passive_income(self, duration: float, player_health: float) -> int:
        factor = min(_INCOME_MAX_FACTOR, max(_INCOME_MIN_FACTOR, duration / 60.0))
        difficulty = 1.0 + (1.0 - player_health) * 0.5
        return max(1, int(round(self.settings.income_rate * factor * difficulty)))

    def _arm_sweep(self) -> None:
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()
        self._sweep_timer = self._timers.call_later(
            self.settings.consistency_interval, self._sweep, name="consistency",
        )

    def _sweep(self) -> None:
        if self.state.is_terminal:
            self._sweep_timer = None
            return
        if self.state.is_running:
            self.verify_consistency()
        self._arm_sweep()

    # -- Internal: helpers ------------------------------------------------------

    def _prune_orphans(self) -> None:
        orphans = [key for key, unit in self._live.items() if not unit.alive]
        for key in orphans:
            self._live.pop(key, None)
        if orphans:
            logger.debug(f"Dropped {len(orphans)} orphaned units from round {self._round_index}")

    def _release_all(self) -> None:
        for unit in list(self._live.values()):
            self.spawner.return_unit(unit)
        self._live.clear()

    def _player_health(self) -> float:
        if self.player is None or self.player.max_lives() <= 0:
            return _DEFAULT_HEALTH
        return self.player.current_lives() / self.player.max_lives()

    @staticmethod
    def _cancel(handles: list[TimerHandle]) -> None:
        for handle in handles:
            handle.cancel()
        handles.clear()

    def _reset_state(self) -> None:
        self._round_index = -1
        self._current: RoundDefinition | None = None
        self._live: dict[tuple[int, int, int], UnitHandle] = {}
        self._spawned = 0
        self._skipped = 0
        self._defeated = 0
        self._reached_end = 0
        self._all_emitted = False
        self._completion_latched = False
        self._completions = 0
        self._round_started_at = 0.0
        self._health_at_start = _DEFAULT_HEALTH
        self._round_multiplier = 1.0
        self._prep_target: int | None = None
        self._prep_remaining = 0.0
        self._prep_last = 0.0

    def _on_transition(self, previous: RoundLifecycle, target: RoundLifecycle) -> None:
        self._publish("state_change", {
            "from": previous.value,
            "to": target.value,
            "round_index": self._round_index,
        })

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
