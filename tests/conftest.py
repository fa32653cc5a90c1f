from __future__ import annotations

from collections.abc import Iterator

import pytest

from batterywatch.common.enums import PowerAction
from batterywatch.countdown import CountdownController
from batterywatch.loop import ManualClock, ManualClockEventLoop, close_loop
from batterywatch.models.policy import ActionPolicy
from batterywatch.protocols import MockPowerActuator, MockPresentationSink

from .fakes import FakeBattery, FakeConfigStore


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=100.0)


@pytest.fixture
def loop(clock: ManualClock) -> Iterator[ManualClockEventLoop]:
    event_loop = ManualClockEventLoop(clock)
    yield event_loop
    close_loop(event_loop)


@pytest.fixture
def battery() -> FakeBattery:
    return FakeBattery()


@pytest.fixture
def config() -> FakeConfigStore:
    return FakeConfigStore(ActionPolicy(action=PowerAction.SLEEP, warning_lead_seconds=30))


@pytest.fixture
def sink() -> MockPresentationSink:
    return MockPresentationSink()


@pytest.fixture
def actuator(clock: ManualClock) -> MockPowerActuator:
    return MockPowerActuator(clock=clock)


@pytest.fixture
def controller(
    battery: FakeBattery,
    config: FakeConfigStore,
    actuator: MockPowerActuator,
    sink: MockPresentationSink,
    loop: ManualClockEventLoop,
) -> CountdownController:
    ctrl = CountdownController(battery, config, actuator, sink, loop)
    ctrl.start()
    return ctrl
