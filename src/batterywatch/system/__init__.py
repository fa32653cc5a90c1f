"""System module for battery hardware access."""

from batterywatch.system.battery import (
    BatterySource,
    BatteryUtils,
    PiJuiceBatterySource,
    PollingBatterySource,
    SysfsBatterySource,
    create_battery_source,
)

__all__ = [
    "BatterySource",
    "BatteryUtils",
    "PiJuiceBatterySource",
    "PollingBatterySource",
    "SysfsBatterySource",
    "create_battery_source",
]
