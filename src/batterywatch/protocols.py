# src/batterywatch/protocols.py
from __future__ import annotations

from typing import Protocol, runtime_checkable

from batterywatch.common.enums import PowerAction
from batterywatch.models.battery import BatteryState


@runtime_checkable
class PresentationSink(Protocol):
    """Protocol for receivers of countdown progress and battery snapshots.

    A sink never feeds anything back into the countdown; it only shows what
    it is given (notification text, tray icon, detail view).
    """

    def on_progress(self, action: PowerAction, remaining_seconds: int) -> None:
        """Report a pending power action.

        Args:
            action: The action that will be taken
            remaining_seconds: Whole seconds left, always positive
        """
        ...

    def on_battery_snapshot(self, state: BatteryState) -> None:
        """Show the latest battery state."""
        ...

    def on_no_battery_detected(self) -> None:
        """Tell the user once that no battery was found at startup."""
        ...

    def on_icon_mode(self, use_theme_icons: bool) -> None:
        """Switch between theme icons and built-in icons."""
        ...


@runtime_checkable
class PowerActuator(Protocol):
    """Protocol for executing power actions.

    Implementations only report whether the request was issued without an
    immediate error; they cannot know whether the machine actually slept.
    """

    def execute(self, action: PowerAction) -> bool:
        """Request a power action.

        Args:
            action: SLEEP, HIBERNATE or POWEROFF; never NONE

        Returns:
            True if the request was issued, False on failure
        """
        ...


class MockPresentationSink:
    """Mock implementation of PresentationSink for testing."""

    def __init__(self) -> None:
        self.progress_calls: list[tuple[PowerAction, int]] = []
        self.snapshots: list[BatteryState] = []
        self.no_battery_calls = 0
        self.icon_modes: list[bool] = []

    def on_progress(self, action: PowerAction, remaining_seconds: int) -> None:
        self.progress_calls.append((action, remaining_seconds))

    def on_battery_snapshot(self, state: BatteryState) -> None:
        self.snapshots.append(state)

    def on_no_battery_detected(self) -> None:
        self.no_battery_calls += 1

    def on_icon_mode(self, use_theme_icons: bool) -> None:
        self.icon_modes.append(use_theme_icons)

    @property
    def remaining_values(self) -> list[int]:
        """Distinct remaining-second values in the order they were reported."""
        values: list[int] = []
        for _, remaining in self.progress_calls:
            if not values or values[-1] != remaining:
                values.append(remaining)
        return values

    def reset_call_history(self) -> None:
        """Reset the call history for testing."""
        self.progress_calls = []
        self.snapshots = []
        self.no_battery_calls = 0
        self.icon_modes = []


class MockPowerActuator:
    """Mock implementation of PowerActuator for testing."""

    def __init__(self, succeed: bool = True, clock: object | None = None) -> None:
        """Initialize the mock.

        Args:
            succeed: Value returned from ``execute``
            clock: Optional object with a ``time()`` method used to stamp calls
        """
        self.succeed = succeed
        self.clock = clock
        self.calls: list[PowerAction] = []
        self.call_times: list[float] = []

    def execute(self, action: PowerAction) -> bool:
        """Record the call without touching the system."""
        self.calls.append(action)
        if self.clock is not None:
            self.call_times.append(self.clock.time())  # type: ignore[attr-defined]
        return self.succeed


class ErrorSimulatingActuator(MockPowerActuator):
    """Actuator mock that raises instead of returning."""

    def __init__(self, error: Exception | None = None) -> None:
        super().__init__(succeed=False)
        self.error = error or OSError("power request refused")

    def execute(self, action: PowerAction) -> bool:
        self.calls.append(action)
        raise self.error
