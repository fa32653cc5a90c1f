"""Type definitions for batterywatch."""

from .pijuice import BatteryStatusDict, PiJuiceLike, PiJuiceStatusData, StatusInterface

__all__ = [
    "BatteryStatusDict",
    "PiJuiceLike",
    "PiJuiceStatusData",
    "StatusInterface",
]
