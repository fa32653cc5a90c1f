"""Settings management.

This package provides:
- WatchSettings: user-configurable settings loaded from config.yaml
- YamlConfigStore: reloadable store feeding the action policy to the watcher
"""

from batterywatch.settings.store import ConfigStore, YamlConfigStore
from batterywatch.settings.user import WatchSettings

__all__ = ["ConfigStore", "WatchSettings", "YamlConfigStore"]
