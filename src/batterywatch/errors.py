"""Exception classes for the battery watcher.

Every failure here is local to a single transition: callers log it and
carry on with a defined fallback instead of letting it reach the event loop.
"""

from __future__ import annotations

from pathlib import Path

from batterywatch.common.enums import PowerAction


class BatteryWatchError(Exception):
    """Base class for all battery watcher errors."""


class ConfigUnavailableError(BatteryWatchError, RuntimeError):
    """Configuration could not be found, read or validated.

    The config store falls back to a disabled policy while this is the
    case, so no countdown can arm.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            path: Config file involved, if one was resolved
        """
        super().__init__(message)
        self.message = message
        self.path = path


class BatteryReadError(BatteryWatchError):
    """Reading the battery hardware failed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class ActuatorError(BatteryWatchError):
    """The operating environment refused a power action."""

    def __init__(self, action: PowerAction, message: str) -> None:
        """Initialize the exception.

        Args:
            action: The power action that was requested
            message: Details reported by the operating environment
        """
        super().__init__(f"{action.value}: {message}")
        self.action = action
        self.message = message
