"""Reloadable configuration store.

The store re-reads its YAML file whenever its content changes and tells
subscribers that *something* changed. Subscribers re-read the whole policy;
the notification carries no payload.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from batterywatch.errors import ConfigUnavailableError
from batterywatch.models.policy import ActionPolicy
from batterywatch.settings.user import WatchSettings

logger: Final = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]


@runtime_checkable
class ConfigStore(Protocol):
    """Protocol for sources of the action policy."""

    def current_policy(self) -> ActionPolicy:
        """Return the policy in effect right now."""
        ...

    def icon_mode(self) -> bool:
        """Return True when the icon theme should be used."""
        ...

    def on_change(self, callback: ChangeCallback) -> None:
        """Register a callback fired whenever any value changes."""
        ...


class YamlConfigStore:
    """Config store backed by a YAML file that is polled for changes."""

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Config file (optional, searches default locations if None)
        """
        self._explicit_path = path
        self._settings: WatchSettings | None = None
        self._fingerprint: str | None = None
        self._callbacks: list[ChangeCallback] = []
        self.path: Path | None = path
        self.last_error: ConfigUnavailableError | None = None

    # ---- ConfigStore protocol ----
    def current_policy(self) -> ActionPolicy:
        if self._settings is None:
            return ActionPolicy.disabled()
        return self._settings.policy

    def icon_mode(self) -> bool:
        return self._settings.use_theme_icons if self._settings else False

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    # ---- loading ----
    @property
    def available(self) -> bool:
        """Whether the last read produced valid settings."""
        return self._settings is not None

    @property
    def settings(self) -> WatchSettings:
        """Last valid settings, or the defaults while none are available."""
        return self._settings or WatchSettings()

    def reload(self) -> bool:
        """Read the config file now.

        On failure the store falls back to the disabled policy until a later
        read succeeds.

        Returns:
            True if valid settings were loaded
        """
        try:
            self.path = WatchSettings.resolve_path(self._explicit_path)
        except ConfigUnavailableError as exc:
            self.path = None
            self._fingerprint = None
            return self._unavailable(exc)

        self._fingerprint = self._digest(self.path)
        try:
            self._settings = WatchSettings.load(self.path)
        except ConfigUnavailableError as exc:
            return self._unavailable(exc)

        self.last_error = None
        policy = self._settings.policy
        logger.info(
            "Loaded %s: action=%s warning=%ds level=%.2f",
            self.path,
            policy.action.value,
            policy.warning_lead_seconds,
            policy.low_level_threshold,
        )
        return True

    def poll(self) -> bool:
        """Reload and notify subscribers if the config file changed.

        Returns:
            True if a change was detected
        """
        try:
            path = WatchSettings.resolve_path(self._explicit_path)
        except ConfigUnavailableError:
            path = None

        fingerprint = self._digest(path) if path is not None else None
        if path == self.path and fingerprint == self._fingerprint:
            return False

        logger.debug("Config file changed: %s", path)
        self.reload()
        self._notify()
        return True

    def _unavailable(self, exc: ConfigUnavailableError) -> bool:
        logger.warning("Configuration unavailable, power actions disabled: %s", exc.message)
        self._settings = None
        self.last_error = exc
        return False

    def _notify(self) -> None:
        for callback in list(self._callbacks):
            callback()

    @staticmethod
    def _digest(path: Path) -> str | None:
        try:
            return hashlib.sha256(path.read_bytes()).hexdigest()
        except OSError:
            return None
