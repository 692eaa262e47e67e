# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Configuration management using Pydantic settings.

Every tunable of the round scheduler, health scaler, difficulty
controller, tracker, economy and unit pool lives here.  Values can be
overridden from the environment with the ``WAVEDIRECTOR_`` prefix and
``__`` as the nested delimiter, e.g.::

    WAVEDIRECTOR_ROUNDS__TOTAL_ROUNDS=20
    WAVEDIRECTOR_CONTROLLER__STRATEGY=learned
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RoundSettings(BaseModel):
    """Round scheduler timing and rewards."""

    total_rounds: int = Field(15, ge=2)
    preparation_time: float = Field(10.0, ge=0.0)       # seconds between rounds
    request_fraction: float = Field(0.2, ge=0.0, le=1.0)  # countdown share elapsed before asking the controller
    decision_latency: float = Field(0.5, ge=0.0)        # seconds the controller takes to answer
    victory_grace: float = Field(3.0, ge=0.0)
    completion_bonus: int = Field(8, ge=0)              # flat passive income on round completion
    tutorial_reward: int = Field(100, ge=0)
    income_rate: float = Field(0.5, ge=0.0)             # in-round passive income per second
    income_min_seconds: float = Field(0.0, ge=0.0)
    consistency_interval: float = Field(10.0, gt=0.0)   # seconds between unit consistency sweeps


class HealthSettings(BaseModel):
    """Per-round unit health multiplier curve."""

    base_multiplier: float = Field(1.0, gt=0.0)
    per_round_increase: float = Field(0.15, ge=0.0)
    max_multiplier: float = Field(12.0, gt=0.0)
    early_phase_end: int = 5
    mid_phase_end: int = 10
    early_phase_multiplier: float = 1.0
    mid_phase_multiplier: float = 1.2
    late_phase_multiplier: float = 1.5

    @model_validator(mode="after")
    def _check_bounds(self) -> "HealthSettings":
        if self.max_multiplier < self.base_multiplier:
            raise ValueError("max_multiplier must be >= base_multiplier")
        if self.mid_phase_end < self.early_phase_end:
            raise ValueError("mid_phase_end must be >= early_phase_end")
        return self


class ControllerSettings(BaseModel):
    """Difficulty controller strategy and health multiplier envelope."""

    strategy: Literal["heuristic", "learned"] = "heuristic"
    enabled: bool = True
    min_health_multiplier: float = Field(0.4, gt=0.0)
    max_health_multiplier: float = Field(16.0, gt=0.0)
    sensitivity: float = Field(0.3, ge=0.0)
    refresh_interval: float = Field(3.0, gt=0.0)        # seconds between cached signal refreshes
    money_scale: float = Field(1000.0, gt=0.0)          # funds that read as "full" in observations
    controllable_types: int = Field(3, ge=1)
    generation_reward: float = 0.1
    generation_penalty: float = -0.5
    history_window: int = Field(10, ge=1)
    history_memory: int = Field(20, ge=1)


class TrackerSettings(BaseModel):
    """Performance tracker reliability and smoothing."""

    reliability_floor: int = Field(2, ge=1)
    recent_window: int = Field(7, ge=1)
    speed_norm: float = Field(5.0, gt=0.0)


class EconomySettings(BaseModel):
    """Player funds ledger."""

    starting_funds: int = Field(300, ge=0)
    max_funds: int = Field(99999, ge=0)
    allow_debt: bool = False
    history_limit: int = Field(500, ge=1)
    kill_reward_growth: float = Field(0.02, ge=0.0)     # gold value growth per round index


class PlayerSettings(BaseModel):
    starting_lives: int = Field(5, ge=1)
    damage_per_leak: int = Field(1, ge=0)


class UnitArchetype(BaseModel):
    """Base stats for one hostile unit type."""

    name: str
    max_health: float = Field(gt=0.0)
    speed: float = Field(gt=0.0)
    gold_value: int = Field(10, ge=0)


def _default_archetypes() -> dict[int, UnitArchetype]:
    return {
        1: UnitArchetype(name="grunt", max_health=10.0, speed=2.0, gold_value=10),
        2: UnitArchetype(name="runner", max_health=6.0, speed=3.5, gold_value=10),
        3: UnitArchetype(name="brute", max_health=22.0, speed=1.2, gold_value=10),
        4: UnitArchetype(name="warlord", max_health=160.0, speed=1.0, gold_value=50),
        5: UnitArchetype(name="stalker", max_health=120.0, speed=1.6, gold_value=50),
        6: UnitArchetype(name="colossus", max_health=240.0, speed=0.8, gold_value=50),
    }


class PoolSettings(BaseModel):
    capacity_per_type: int = Field(64, ge=1)
    archetypes: dict[int, UnitArchetype] = Field(default_factory=_default_archetypes)
    boss_types: tuple[int, ...] = (4, 5, 6)


class Settings(BaseSettings):
    """WaveDirector settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WAVEDIRECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    seed: int | None = None   # RNG seed for composition and boss selection

    rounds: RoundSettings = Field(default_factory=RoundSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    controller: ControllerSettings = Field(default_factory=ControllerSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    economy: EconomySettings = Field(default_factory=EconomySettings)
    player: PlayerSettings = Field(default_factory=PlayerSettings)
    pool: PoolSettings = Field(default_factory=PoolSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
