# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Unit tests for RoundInjectionBridge — request, delivery and race outcomes."""

from __future__ import annotations

import pytest

from wavedirector.comms.event_bus import EventBus, drain
from wavedirector.simulation.bridge import RoundInjectionBridge
from wavedirector.simulation.rounds import fallback_round
from wavedirector.simulation.timers import SimClock, TimerQueue

pytestmark = pytest.mark.unit


class StubController:
    """Composes the fallback round for any index in 1 .. 13."""

    def __init__(self, produce: bool = True) -> None:
        self.produce = produce
        self.calls: list[int] = []

    def handles(self, round_index: int) -> bool:
        return 1 <= round_index <= 13

    def generate(self, round_index: int):
        self.calls.append(round_index)
        return fallback_round(round_index) if self.produce else None


@pytest.fixture
def clock() -> SimClock:
    return SimClock()


@pytest.fixture
def timers(clock) -> TimerQueue:
    return TimerQueue(clock)


def _advance(clock, timers, seconds):
    clock.advance(seconds)
    timers.run_due()


class TestRequests:
    def test_request_resolves_after_latency(self, clock, timers):
        controller = StubController()
        bridge = RoundInjectionBridge(timers, controller, decision_latency=0.5)
        assert bridge.request_for_round(3)
        assert bridge.is_requested(3)
        _advance(clock, timers, 0.4)
        assert controller.calls == []
        _advance(clock, timers, 0.1)
        assert controller.calls == [3]
        assert bridge.has_pending(3)
        assert not bridge.is_requested(3)

    def test_duplicate_request_ignored(self, timers):
        bridge = RoundInjectionBridge(timers, StubController())
        assert bridge.request_for_round(2)
        assert not bridge.request_for_round(2)

    def test_no_controller(self, timers):
        assert not RoundInjectionBridge(timers).request_for_round(2)

    def test_fixed_rounds_not_requested(self, timers):
        bridge = RoundInjectionBridge(timers, StubController())
        assert not bridge.request_for_round(0)
        assert not bridge.request_for_round(14)

    def test_unresolved_request_leaves_nothing(self, clock, timers):
        bridge = RoundInjectionBridge(timers, StubController(produce=False))
        bridge.request_for_round(4)
        _advance(clock, timers, 1.0)
        assert bridge.consume_if_pending(4) is None


class TestDeliveries:
    def test_delivery_for_preparation_target_is_installed(self, timers):
        installed = {}
        bridge = RoundInjectionBridge(timers, StubController())
        bridge.attach(lambda: 5, lambda: 4, lambda i, d: installed.__setitem__(i, d))
        assert bridge.deliver(5, fallback_round(5))
        assert installed[5] == fallback_round(5)
        assert not bridge.has_pending(5)

    def test_delivery_for_later_round_is_buffered(self, timers):
        bridge = RoundInjectionBridge(timers, StubController())
        bridge.attach(lambda: 5, lambda: 4, lambda i, d: None)
        assert bridge.deliver(7, fallback_round(7))
        assert bridge.consume_if_pending(7) == fallback_round(7)
        assert bridge.consume_if_pending(7) is None

    def test_late_delivery_is_discarded(self, timers):
        bridge = RoundInjectionBridge(timers, StubController())
        bridge.attach(lambda: None, lambda: 6, lambda i, d: None)
        assert not bridge.deliver(6, fallback_round(6))
        assert not bridge.deliver(2, fallback_round(2))
        assert bridge.discarded == 2

    @pytest.mark.parametrize("payload", [None, {"groups": []}, {"name": "no groups"}, "round"])
    def test_malformed_delivery_is_dropped(self, timers, payload):
        bridge = RoundInjectionBridge(timers, StubController())
        assert not bridge.deliver(3, payload)
        assert not bridge.has_pending(3)
        assert bridge.discarded == 1

    def test_dict_payload_is_accepted(self, timers):
        bridge = RoundInjectionBridge(timers, StubController())
        assert bridge.deliver(3, fallback_round(3).to_dict())
        assert bridge.consume_if_pending(3) == fallback_round(3)

    def test_delivery_is_announced(self, timers):
        bus = EventBus()
        q = bus.subscribe("round_delivered")
        bridge = RoundInjectionBridge(timers, StubController(), event_bus=bus)
        bridge.deliver(3, fallback_round(3))
        assert drain(q)[0]["data"] == {"round_index": 3, "total_units": 22}


class TestClear:
    def test_clear_cancels_outstanding_requests(self, clock, timers):
        controller = StubController()
        bridge = RoundInjectionBridge(timers, controller)
        bridge.request_for_round(3)
        bridge.deliver(5, fallback_round(5))
        bridge.clear()
        _advance(clock, timers, 5.0)
        assert controller.calls == []
        assert not bridge.has_pending(5)
        assert not bridge.is_requested(3)
