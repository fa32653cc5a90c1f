"""User-configurable settings loaded from config.yaml."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, ClassVar, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from batterywatch.common.enums import PowerAction
from batterywatch.errors import ConfigUnavailableError
from batterywatch.models.policy import DEFAULT_LOW_LEVEL, DEFAULT_WARNING_SECONDS, ActionPolicy

# Load environment variables from .env file(s)
load_dotenv()

CONFIG_ENV_VAR = "BATTERYWATCH_CONFIG"


def _interpolate_env(content: str) -> str:
    return re.sub(r"\$\{(\w+)\}", lambda m: os.getenv(m.group(1), ""), content)


class WatchSettings(BaseModel):
    """Settings for the low-battery watcher.

    Every field has a default, so an empty config file yields a watcher that
    reports the battery but never takes a power action.
    """

    # Default search paths for configuration
    DEFAULT_CONFIG_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("~/.config/batterywatch/config.yaml").expanduser(),
        Path("/etc/batterywatch/config.yaml"),
    ]

    # Power-low policy
    power_low_action: PowerAction = Field(
        PowerAction.NONE, description="Action to take when the battery runs low"
    )
    power_low_warning: int = Field(
        DEFAULT_WARNING_SECONDS,
        ge=0,
        description="Seconds of warning before the action is taken",
    )
    power_low_level: float = Field(
        DEFAULT_LOW_LEVEL,
        ge=0.0,
        le=1.0,
        description="Charge level (0-1) at or below which the battery counts as low",
    )

    # Presentation
    use_theme_icons: bool = Field(False, description="Use icon theme instead of built-in icons")
    notifications: bool = Field(True, description="Show desktop notifications")

    # Hardware
    battery_backend: Literal["sysfs", "pijuice"] = "sysfs"
    power_supply_dir: Path = Field(
        Path("/sys/class/power_supply"), description="Where sysfs exposes power supplies"
    )
    battery_poll_seconds: float = Field(5.0, gt=0, description="Battery polling interval")
    config_poll_seconds: float = Field(2.0, gt=0, description="Config file polling interval")
    command_prefix: list[str] = Field(
        default_factory=list, description="Prepended to power commands, e.g. ['sudo']"
    )

    # ---- validators ----
    @field_validator("power_low_action", mode="before")
    @classmethod
    def parse_action(cls, v: Any) -> Any:
        """Accept action names in any case as well as the legacy 0-3 codes."""
        if isinstance(v, bool):
            raise ValueError("power_low_action must be a name or an index")
        if isinstance(v, int):
            return PowerAction.from_index(v)
        if isinstance(v, str):
            name = v.strip().lower()
            if name.isdigit():
                return PowerAction.from_index(int(name))
            return {"suspend": "sleep", "shutdown": "poweroff"}.get(name, name)
        return v

    # ---- convenience methods ----
    @property
    def policy(self) -> ActionPolicy:
        """The action policy described by these settings."""
        return ActionPolicy(
            action=self.power_low_action,
            warning_lead_seconds=self.power_low_warning,
            low_level_threshold=self.power_low_level,
        )

    def to_yaml(self) -> str:
        """Serialize to YAML in the shape ``load`` accepts."""
        data = self.model_dump(mode="json")
        return yaml.safe_dump(data, sort_keys=False)

    @classmethod
    def resolve_path(cls, path: Path | None = None) -> Path:
        """Find the config file to use.

        Args:
            path: Explicit path (optional, searches default locations if None)

        Returns:
            Path to the config file

        Raises:
            ConfigUnavailableError: If no config file is found
        """
        if path is not None:
            return path

        # Check environment variable first
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)

        for default_path in cls.DEFAULT_CONFIG_PATHS:
            if default_path.exists():
                return default_path

        raise ConfigUnavailableError(
            f"No configuration file found. Create config.yaml or set {CONFIG_ENV_VAR}."
        )

    @classmethod
    def load(cls, path: Path | None = None) -> WatchSettings:
        """Load configuration from a YAML file.

        Args:
            path: Path to config file (optional, searches default locations if None)

        Returns:
            Validated WatchSettings object

        Raises:
            ConfigUnavailableError: If the file is missing, cannot be parsed or is invalid
        """
        path = cls.resolve_path(path)
        if not path.exists():
            raise ConfigUnavailableError(f"Config file not found: {path}", path)

        try:
            raw = _interpolate_env(path.read_text(encoding="utf-8"))
            data = yaml.safe_load(raw)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigUnavailableError(f"Unable to read config YAML: {exc}", path) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigUnavailableError(f"Config root must be a mapping: {path}", path)

        try:
            return cls.model_validate(data)
        except ValidationError as err:
            raise ConfigUnavailableError(f"Invalid configuration:\n{err}", path) from err
