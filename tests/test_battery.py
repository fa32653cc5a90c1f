from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from batterywatch.errors import BatteryReadError
from batterywatch.models.battery import BatteryState
from batterywatch.system.battery import (
    BatteryUtils,
    PiJuiceBatterySource,
    PollingBatterySource,
    SysfsBatterySource,
    create_battery_source,
)


def make_supply(base: Path, name: str, **files: str) -> Path:
    path = base / name
    path.mkdir(parents=True)
    for filename, content in files.items():
        (path / filename).write_text(content + "\n")
    return path


@pytest.fixture
def sysfs(tmp_path: Path) -> Path:
    base = tmp_path / "power_supply"
    make_supply(base, "AC", type="Mains", online="0")
    make_supply(base, "BAT0", type="Battery", present="1", status="Discharging", capacity="42")
    return base


def test_polling_source_needs_a_backend() -> None:
    with pytest.raises(TypeError):
        PollingBatterySource()  # type: ignore[abstract]


def test_sysfs_finds_battery(sysfs: Path) -> None:
    source = SysfsBatterySource(sysfs)

    assert source.have_battery() is True
    assert source.battery_path == sysfs / "BAT0"


def test_sysfs_poll_reads_state(sysfs: Path) -> None:
    source = SysfsBatterySource(sysfs, low_level=0.05)

    assert source.poll() is True
    assert source.current_state() == BatteryState(discharging=True, charge_level=0.42, power_low=False)


def test_sysfs_power_low_at_threshold(sysfs: Path) -> None:
    (sysfs / "BAT0" / "capacity").write_text("5\n")
    source = SysfsBatterySource(sysfs, low_level=0.05)
    source.poll()

    assert source.current_state().power_low is True


def test_sysfs_charging_is_never_power_low(sysfs: Path) -> None:
    (sysfs / "BAT0" / "capacity").write_text("2\n")
    (sysfs / "BAT0" / "status").write_text("Charging\n")
    source = SysfsBatterySource(sysfs)
    source.poll()

    state = source.current_state()
    assert state.discharging is False
    assert state.power_low is False


def test_sysfs_change_notifies_only_on_change(sysfs: Path) -> None:
    source = SysfsBatterySource(sysfs)
    calls: list[BatteryState] = []
    source.on_change(lambda: calls.append(source.current_state()))

    source.poll()
    source.poll()
    (sysfs / "BAT0" / "capacity").write_text("41\n")
    source.poll()

    assert [s.charge_level for s in calls] == [0.42, 0.41]


def test_set_low_level_reevaluates(sysfs: Path) -> None:
    source = SysfsBatterySource(sysfs, low_level=0.05)
    source.poll()
    calls: list[bool] = []
    source.on_change(lambda: calls.append(source.current_state().power_low))

    assert source.set_low_level(0.5) is True
    assert source.set_low_level(0.5) is False
    assert calls == [True]


def test_sysfs_energy_fallback(tmp_path: Path) -> None:
    base = tmp_path / "ps"
    make_supply(
        base,
        "BAT1",
        type="Battery",
        status="Discharging",
        energy_now="3000000",
        energy_full="60000000",
    )
    source = SysfsBatterySource(base)
    source.poll()

    assert source.current_state().charge_level == pytest.approx(0.05)
    assert source.current_state().power_low is True


def test_sysfs_skips_absent_battery(tmp_path: Path) -> None:
    base = tmp_path / "ps"
    make_supply(base, "BAT0", type="Battery", present="0", status="Unknown", capacity="0")
    source = SysfsBatterySource(base)

    assert source.have_battery() is False
    assert source.poll() is False
    assert source.current_state() == BatteryState.absent()


def test_sysfs_missing_directory(tmp_path: Path) -> None:
    source = SysfsBatterySource(tmp_path / "nope")

    assert source.have_battery() is False


def test_sysfs_read_error_keeps_previous_state(
    sysfs: Path, caplog: pytest.LogCaptureFixture
) -> None:
    source = SysfsBatterySource(sysfs)
    source.poll()
    before = source.current_state()

    (sysfs / "BAT0" / "capacity").write_text("garbage\n")
    assert source.poll() is False
    assert source.current_state() == before
    assert "Could not read battery status" in caplog.text


# ── PiJuice ──────────────────────────────────────────────────────────────────
class FakeStatus:
    def __init__(self, battery: str = "NORMAL", power_input: str = "NOT_PRESENT", level: int = 4):
        self.battery = battery
        self.power_input = power_input
        self.level = level
        self.error = "NO_ERROR"

    def GetStatus(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "data": {
                "isFault": False,
                "isButton": False,
                "battery": self.battery,
                "powerInput": self.power_input,
                "powerInput5vIo": "NOT_PRESENT",
            },
        }

    def GetChargeLevel(self) -> dict[str, Any]:
        return {"error": "NO_ERROR", "data": self.level}


class FakePiJuice:
    def __init__(self, status: FakeStatus) -> None:
        self.status = status


def test_get_battery_status_extracts_fields() -> None:
    result = BatteryUtils.get_battery_status(FakePiJuice(FakeStatus(level=85)))

    assert result == {"present": True, "charge_level": 85, "is_discharging": True}


def test_get_battery_status_external_power() -> None:
    status = FakeStatus(battery="CHARGING_FROM_IN", power_input="PRESENT")
    result = BatteryUtils.get_battery_status(FakePiJuice(status))

    assert result["is_discharging"] is False


def test_get_battery_status_error() -> None:
    status = FakeStatus()
    status.error = "COMMUNICATION_ERROR"

    with pytest.raises(BatteryReadError):
        BatteryUtils.get_battery_status(FakePiJuice(status))


def test_pijuice_source_reports_power_low() -> None:
    source = PiJuiceBatterySource(FakePiJuice(FakeStatus(level=4)), low_level=0.05)

    assert source.have_battery() is True
    source.poll()
    assert source.current_state() == BatteryState(True, 0.04, True)


def test_pijuice_source_without_battery() -> None:
    source = PiJuiceBatterySource(FakePiJuice(FakeStatus(battery="NOT_PRESENT")))

    assert source.have_battery() is False


def test_pijuice_source_without_hat() -> None:
    assert PiJuiceBatterySource(None).have_battery() is False


def test_create_battery_source(tmp_path: Path) -> None:
    source = create_battery_source("sysfs", tmp_path, 0.1)

    assert isinstance(source, SysfsBatterySource)
    assert source.base_dir == tmp_path
    assert source.low_level == 0.1

    with pytest.raises(ValueError):
        create_battery_source("acpi")
