# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Root conftest — isolated settings, session factory and a stub policy."""

from __future__ import annotations

import os

import pytest

from wavedirector.comms.event_bus import EventBus
from wavedirector.config import Settings
from wavedirector.session import GameSession


class StubPolicy:
    """Policy that returns a fixed action and remembers its rewards."""

    def __init__(self, action=(0.2, 0.6, 0.2, 0.5, 0.5, 0.0)) -> None:
        self.action = list(action)
        self.observations: list = []
        self.rewards: list[float] = []

    def predict(self, observation):
        self.observations.append(observation)
        return list(self.action)

    def add_reward(self, reward: float) -> None:
        self.rewards.append(reward)


@pytest.fixture
def settings(monkeypatch) -> Settings:
    """Default settings, untouched by the environment or a .env file."""
    for key in list(os.environ):
        if key.startswith("WAVEDIRECTOR_"):
            monkeypatch.delenv(key)
    return Settings(_env_file=None)


@pytest.fixture
def quiet_settings(settings) -> Settings:
    """Settings without in-round passive income, so funds are exact."""
    settings.rounds.income_rate = 0.0
    return settings


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(maxsize=1000)


@pytest.fixture
def stub_policy() -> StubPolicy:
    return StubPolicy()


@pytest.fixture
def make_session(quiet_settings, event_bus):
    """Factory for sessions sharing the test's settings and event bus."""
    sessions: list[GameSession] = []

    def _make(**kwargs) -> GameSession:
        kwargs.setdefault("settings", quiet_settings)
        kwargs.setdefault("event_bus", event_bus)
        kwargs.setdefault("seed", 7)
        session = GameSession(**kwargs)
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()
