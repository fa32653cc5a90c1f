"""Data models shared between components."""

from batterywatch.models.battery import BatteryState, CountdownState
from batterywatch.models.policy import ActionPolicy

__all__ = ["ActionPolicy", "BatteryState", "CountdownState"]
