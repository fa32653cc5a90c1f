from __future__ import annotations

import asyncio
import subprocess
import threading
from typing import Any

import pytest

from batterywatch import notify
from batterywatch.common.enums import PowerAction
from batterywatch.countdown import CountdownController
from batterywatch.loop import ManualClockEventLoop, close_loop
from batterywatch.models.battery import BatteryState
from batterywatch.models.policy import ActionPolicy
from batterywatch.notify import LoggingSink, MultiSink, NotifySendSink
from batterywatch.protocols import MockPowerActuator, MockPresentationSink, PresentationSink

from .fakes import FakeBattery, FakeConfigStore


class _FakeNotifySend:
    def __init__(self, stdout: str = "17\n", error: Exception | None = None) -> None:
        self.commands: list[list[str]] = []
        self.threads: list[str] = []
        self.stdout = stdout
        self.error = error

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.commands.append(cmd)
        self.threads.append(threading.current_thread().name)
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(cmd, 0, self.stdout, "")


@pytest.mark.parametrize(
    "action, text",
    [
        (PowerAction.SLEEP, "Sleeping in 5 seconds"),
        (PowerAction.HIBERNATE, "Hibernating in 5 seconds"),
        (PowerAction.POWEROFF, "Shutting down in 5 seconds"),
    ],
)
def test_progress_text(monkeypatch: pytest.MonkeyPatch, action: PowerAction, text: str) -> None:
    fake = _FakeNotifySend()
    monkeypatch.setattr(notify.subprocess, "run", fake)

    NotifySendSink().on_progress(action, 5)

    cmd = fake.commands[0]
    assert cmd[0] == "notify-send"
    assert cmd[-2:] == ["Power low", text]
    assert cmd[cmd.index("-u") + 1] == "critical"


def test_progress_updates_notification_in_place(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeNotifySend()
    monkeypatch.setattr(notify.subprocess, "run", fake)
    sink = NotifySendSink()

    sink.on_progress(PowerAction.SLEEP, 3)
    sink.on_progress(PowerAction.SLEEP, 3)  # same second, not resent
    sink.on_progress(PowerAction.SLEEP, 2)

    assert len(fake.commands) == 2
    assert "-r" not in fake.commands[0]
    assert fake.commands[1][fake.commands[1].index("-r") + 1] == "17"


def test_power_restored_resets_dedup(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeNotifySend()
    monkeypatch.setattr(notify.subprocess, "run", fake)
    sink = NotifySendSink()

    sink.on_progress(PowerAction.SLEEP, 3)
    sink.on_battery_snapshot(BatteryState(discharging=False, charge_level=0.04))
    sink.on_progress(PowerAction.SLEEP, 3)

    assert len(fake.commands) == 2


def test_missing_notify_send_is_tolerated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(notify.subprocess, "run", _FakeNotifySend(error=FileNotFoundError("notify-send")))

    NotifySendSink().on_no_battery_detected()


def test_no_battery_notice(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeNotifySend()
    monkeypatch.setattr(notify.subprocess, "run", fake)

    NotifySendSink().on_no_battery_detected()

    assert fake.commands[0][-2] == "No battery!"


def test_loop_sends_on_worker_thread(
    monkeypatch: pytest.MonkeyPatch, loop: ManualClockEventLoop
) -> None:
    fake = _FakeNotifySend()
    monkeypatch.setattr(notify.subprocess, "run", fake)
    sink = NotifySendSink(loop)

    sink.on_progress(PowerAction.SLEEP, 3)
    assert fake.commands == []  # nothing runs until the loop does
    assert sink._worker is not None
    loop.run_until_complete(sink._worker)

    sink.on_progress(PowerAction.SLEEP, 2)
    loop.run_until_complete(sink._worker)

    assert [cmd[-1] for cmd in fake.commands] == ["Sleeping in 3 seconds", "Sleeping in 2 seconds"]
    assert fake.commands[1][fake.commands[1].index("-r") + 1] == "17"
    assert threading.main_thread().name not in fake.threads


def test_queued_progress_is_replaced_by_newer(
    monkeypatch: pytest.MonkeyPatch, loop: ManualClockEventLoop
) -> None:
    fake = _FakeNotifySend()
    monkeypatch.setattr(notify.subprocess, "run", fake)
    sink = NotifySendSink(loop)

    sink.on_no_battery_detected()
    sink.on_progress(PowerAction.SLEEP, 5)
    sink.on_progress(PowerAction.SLEEP, 4)
    sink.on_progress(PowerAction.SLEEP, 3)
    assert sink._worker is not None
    loop.run_until_complete(sink._worker)

    assert [cmd[-2] for cmd in fake.commands] == ["No battery!", "Power low"]
    assert fake.commands[1][-1] == "Sleeping in 3 seconds"


def test_slow_notify_send_does_not_delay_action(monkeypatch: pytest.MonkeyPatch) -> None:
    release = threading.Event()

    def slow_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        release.wait(2.0)
        return subprocess.CompletedProcess(cmd, 0, "9\n", "")

    monkeypatch.setattr(notify.subprocess, "run", slow_run)
    loop = asyncio.new_event_loop()
    battery = FakeBattery()
    actuator = MockPowerActuator(clock=loop)
    config = FakeConfigStore(ActionPolicy(action=PowerAction.SLEEP, warning_lead_seconds=1))
    controller = CountdownController(battery, config, actuator, NotifySendSink(loop), loop)

    try:
        controller.start()
        battery.set(True, 0.01)
        deadline = controller.state.deadline
        loop.run_until_complete(asyncio.sleep(1.5))
    finally:
        release.set()
        close_loop(loop)

    assert deadline is not None
    assert actuator.calls == [PowerAction.SLEEP]
    assert actuator.call_times[0] - deadline < 0.3


def test_icon_mode_selects_icon() -> None:
    sink = NotifySendSink(icon="battery-empty")
    sink.on_icon_mode(True)

    cmd = sink.build_command("t", "b", "critical")
    assert cmd[cmd.index("-i") + 1] == "battery-empty"


def test_logging_sink(caplog: pytest.LogCaptureFixture) -> None:
    LoggingSink().on_no_battery_detected()

    assert "No battery found" in caplog.text


def test_multi_sink_fans_out() -> None:
    first, second = MockPresentationSink(), MockPresentationSink()
    sink = MultiSink([first, second])
    state = BatteryState(discharging=True, charge_level=0.5)

    sink.on_progress(PowerAction.SLEEP, 4)
    sink.on_battery_snapshot(state)
    sink.on_no_battery_detected()
    sink.on_icon_mode(True)

    for mock in (first, second):
        assert mock.progress_calls == [(PowerAction.SLEEP, 4)]
        assert mock.snapshots == [state]
        assert mock.no_battery_calls == 1
        assert mock.icon_modes == [True]


@pytest.mark.parametrize("sink", [LoggingSink(), NotifySendSink(), MultiSink([]), MockPresentationSink()])
def test_sinks_satisfy_protocol(sink: object) -> None:
    assert isinstance(sink, PresentationSink)
