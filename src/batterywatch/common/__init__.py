"""Shared enumerations."""

from batterywatch.common.enums import CountdownPhase, PowerAction

__all__ = ["CountdownPhase", "PowerAction"]
