from __future__ import annotations

from enum import Enum


class PowerAction(Enum):
    """Action taken when the battery runs low.

    The legacy settings format stored the action as an integer index, which
    ``from_index`` still accepts.
    """

    NONE = "none"
    SLEEP = "sleep"
    HIBERNATE = "hibernate"
    POWEROFF = "poweroff"

    @classmethod
    def from_index(cls, index: int) -> PowerAction:
        """Map the legacy integer code (0..3) to an action."""
        order = [cls.NONE, cls.SLEEP, cls.HIBERNATE, cls.POWEROFF]
        if not 0 <= index < len(order):
            raise ValueError(f"Unknown power action index: {index}")
        return order[index]

    @property
    def progress_text(self) -> str:
        """Notification body template; ``{}`` receives the remaining seconds."""
        return _PROGRESS_TEXT[self]


_PROGRESS_TEXT: dict[PowerAction, str] = {
    PowerAction.NONE: "",
    PowerAction.SLEEP: "Sleeping in {} seconds",
    PowerAction.HIBERNATE: "Hibernating in {} seconds",
    PowerAction.POWEROFF: "Shutting down in {} seconds",
}


class CountdownPhase(Enum):
    """Phases of the low-battery countdown."""

    IDLE = 0
    ARMED = 1
    FIRING = 2  # transient, collapses back to IDLE
