from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from batterywatch.common.enums import PowerAction

DEFAULT_WARNING_SECONDS = 30
DEFAULT_LOW_LEVEL = 0.05


class ActionPolicy(BaseModel):
    """What to do when the battery runs low.

    Replaced wholesale whenever the configuration changes; never updated
    field by field.
    """

    model_config = ConfigDict(frozen=True)

    action: PowerAction = PowerAction.NONE
    warning_lead_seconds: int = Field(DEFAULT_WARNING_SECONDS, ge=0)
    low_level_threshold: float = Field(DEFAULT_LOW_LEVEL, ge=0.0, le=1.0)

    @classmethod
    def disabled(cls) -> ActionPolicy:
        """Policy used while no valid configuration is available."""
        return cls(action=PowerAction.NONE)

    @property
    def enabled(self) -> bool:
        """Whether a power action is configured at all."""
        return self.action is not PowerAction.NONE
