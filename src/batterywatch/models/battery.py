from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BatteryState:
    """Snapshot of the battery as last observed.

    Produced by a battery source on every observed change. ``power_low`` is
    true when the battery is discharging and the charge level is at or below
    the configured low-level threshold.
    """

    discharging: bool
    charge_level: float
    power_low: bool = False

    @classmethod
    def absent(cls) -> BatteryState:
        """State reported when no battery is present (never power-low)."""
        return cls(discharging=False, charge_level=1.0, power_low=False)

    @property
    def percent(self) -> int:
        """Charge level as a rounded percentage."""
        return round(self.charge_level * 100)

    @property
    def formatted_level(self) -> str:
        """Return formatted battery percentage string."""
        return f"{self.percent}%"


@dataclass(frozen=True)
class CountdownState:
    """Read-only view of the countdown.

    ``deadline`` is a monotonic timestamp in seconds, or None when unarmed.
    """

    deadline: float | None = None

    @property
    def armed(self) -> bool:
        return self.deadline is not None

    def remaining(self, now: float) -> float:
        """Seconds left until the deadline (0.0 when unarmed)."""
        if self.deadline is None:
            return 0.0
        return self.deadline - now
