"""batterywatch - take a power action when the battery runs low.

This package provides:
- CountdownController: the arm/tick/cancel/fire state machine
- Battery sources for Linux sysfs and the PiJuice HAT
- A reloadable YAML config store
- systemd power actuators and desktop notification sinks
"""

__version__ = "0.1.0"
