"""Type definitions for the PiJuice hardware interface."""

from typing import Any, Literal, Protocol, TypedDict, runtime_checkable

PiJuiceBatteryStatus = Literal[
    "NORMAL",
    "CHARGING_FROM_IN",
    "CHARGING_FROM_5V_IO",
    "NOT_PRESENT",
]


class PiJuiceStatusData(TypedDict, total=False):
    """The ``data`` member of ``GetStatus()``."""

    isFault: bool
    isButton: bool
    battery: PiJuiceBatteryStatus
    powerInput: str
    powerInput5vIo: str


class BatteryStatusDict(TypedDict):
    """Battery status as used by the watcher."""

    present: bool
    charge_level: int
    is_discharging: bool


@runtime_checkable
class StatusInterface(Protocol):
    """Protocol for PiJuice status API."""

    def GetStatus(self) -> dict[str, Any]: ...
    def GetChargeLevel(self) -> dict[str, Any]: ...


@runtime_checkable
class PiJuiceLike(Protocol):
    """Protocol for objects that behave like PiJuice."""

    status: StatusInterface
