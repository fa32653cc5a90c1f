"""Battery sources.

A battery source is polled from the event loop. Each poll reads the hardware
and, if the discharging flag, charge level or power-low condition changed,
notifies its subscribers. Subscribers read the new snapshot through
``current_state()``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from batterywatch.errors import BatteryReadError
from batterywatch.models.battery import BatteryState
from batterywatch.models.policy import DEFAULT_LOW_LEVEL
from batterywatch.types.pijuice import BatteryStatusDict, PiJuiceLike

logger: Final = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]

# (discharging, charge level in [0, 1])
Reading = tuple[bool, float]


@runtime_checkable
class BatterySource(Protocol):
    """Protocol for observable battery state."""

    def current_state(self) -> BatteryState:
        """Return the latest battery snapshot."""
        ...

    def on_change(self, callback: ChangeCallback) -> None:
        """Register a callback fired whenever the snapshot changes."""
        ...

    def have_battery(self) -> bool:
        """Return True if a battery was found."""
        ...


class PollingBatterySource(ABC):
    """Base class for battery sources that are read on a timer.

    Subclasses implement ``_detect`` and ``_read``.
    """

    name = "battery"

    def __init__(self, low_level: float = DEFAULT_LOW_LEVEL) -> None:
        self._low_level = low_level
        self._reading: Reading | None = None
        self._state = BatteryState.absent()
        self._present: bool | None = None
        self._callbacks: list[ChangeCallback] = []

    # ---- BatterySource protocol ----
    def current_state(self) -> BatteryState:
        return self._state

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def have_battery(self) -> bool:
        # Detected once; a missing battery stays missing for this process
        if self._present is None:
            self._present = self._detect()
        return self._present

    # ---- polling ----
    @property
    def low_level(self) -> float:
        return self._low_level

    def set_low_level(self, low_level: float) -> bool:
        """Change the power-low threshold and re-evaluate the last reading.

        Returns:
            True if the snapshot changed
        """
        if low_level == self._low_level:
            return False
        self._low_level = low_level
        return self._update(self._reading)

    def poll(self) -> bool:
        """Read the hardware once.

        Read errors are logged and leave the previous snapshot in place.

        Returns:
            True if the snapshot changed
        """
        if not self.have_battery():
            return False

        try:
            reading = self._read()
        except BatteryReadError as exc:
            logger.warning("Could not read battery status: %s", exc)
            return False

        return self._update(reading)

    def _update(self, reading: Reading | None) -> bool:
        if reading is None:
            return False
        self._reading = reading

        discharging, level = reading
        state = BatteryState(
            discharging=discharging,
            charge_level=level,
            power_low=discharging and level <= self._low_level,
        )
        if state == self._state:
            return False

        self._state = state
        for callback in list(self._callbacks):
            callback()
        return True

    @abstractmethod
    def _detect(self) -> bool:
        """Return True if a battery is present."""

    @abstractmethod
    def _read(self) -> Reading:
        """Read the hardware.

        Raises:
            BatteryReadError: If the battery cannot be read
        """


class SysfsBatterySource(PollingBatterySource):
    """Battery exposed by the Linux kernel under /sys/class/power_supply."""

    name = "sysfs"

    def __init__(
        self,
        base_dir: Path = Path("/sys/class/power_supply"),
        low_level: float = DEFAULT_LOW_LEVEL,
    ) -> None:
        """Initialize the source.

        Args:
            base_dir: Directory holding one subdirectory per power supply
            low_level: Charge level (0-1) at or below which power is low
        """
        super().__init__(low_level)
        self.base_dir = base_dir
        self.battery_path: Path | None = None

    def find_battery_path(self) -> Path | None:
        """Return the first present supply whose type is ``Battery``."""
        try:
            candidates = sorted(self.base_dir.iterdir())
        except OSError as exc:
            logger.debug("Cannot list %s: %s", self.base_dir, exc)
            return None

        for path in candidates:
            if self._read_file(path / "type") != "Battery":
                continue
            if self._read_file(path / "present") == "0":
                continue
            return path
        return None

    def _detect(self) -> bool:
        self.battery_path = self.find_battery_path()
        if self.battery_path is None:
            logger.info("No battery found under %s", self.base_dir)
            return False
        logger.info("Using battery %s", self.battery_path)
        return True

    def _read(self) -> Reading:
        assert self.battery_path is not None
        status = self._read_file(self.battery_path / "status")
        if status is None:
            raise BatteryReadError(self.name, f"no status in {self.battery_path}")
        return status == "Discharging", self._charge_level()

    def _charge_level(self) -> float:
        assert self.battery_path is not None
        capacity = self._read_file(self.battery_path / "capacity")
        if capacity is not None:
            try:
                return _clamp(int(capacity) / 100)
            except ValueError:
                logger.debug("Ignoring malformed capacity %r", capacity)

        # Some drivers only report energy (µWh) or charge (µAh) counters
        for now_name, full_name in (("energy_now", "energy_full"), ("charge_now", "charge_full")):
            now = self._read_file(self.battery_path / now_name)
            full = self._read_file(self.battery_path / full_name)
            if now is None or full is None:
                continue
            try:
                if int(full) > 0:
                    return _clamp(int(now) / int(full))
            except ValueError:
                continue

        raise BatteryReadError(self.name, f"no charge level in {self.battery_path}")

    @staticmethod
    def _read_file(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError:
            return None


class BatteryUtils:
    """Utilities for PiJuice battery status."""

    @staticmethod
    def get_battery_status(pijuice: PiJuiceLike) -> BatteryStatusDict:
        """Get battery status information from a PiJuice HAT.

        Args:
            pijuice: PiJuice or compatible object

        Returns:
            Dictionary with presence, charge level and discharging flag

        Raises:
            BatteryReadError: If the HAT reports an error
        """
        status = pijuice.status.GetStatus()
        if status.get("error", "NO_ERROR") != "NO_ERROR":
            raise BatteryReadError("pijuice", f"GetStatus: {status.get('error')}")
        data = status.get("data", {})

        battery = data.get("battery", "NOT_PRESENT")
        if battery == "NOT_PRESENT":
            return {"present": False, "charge_level": 0, "is_discharging": False}

        charge = pijuice.status.GetChargeLevel()
        if charge.get("error", "NO_ERROR") != "NO_ERROR":
            raise BatteryReadError("pijuice", f"GetChargeLevel: {charge.get('error')}")

        external_power = "PRESENT" in (data.get("powerInput"), data.get("powerInput5vIo"))
        return {
            "present": True,
            "charge_level": int(charge.get("data", 0)),
            "is_discharging": battery == "NORMAL" and not external_power,
        }


class PiJuiceBatterySource(PollingBatterySource):
    """Battery of a PiJuice HAT."""

    name = "pijuice"

    def __init__(self, pijuice: PiJuiceLike | None, low_level: float = DEFAULT_LOW_LEVEL) -> None:
        super().__init__(low_level)
        self.pijuice = pijuice

    def _detect(self) -> bool:
        if self.pijuice is None:
            return False
        try:
            return BatteryUtils.get_battery_status(self.pijuice)["present"]
        except (BatteryReadError, OSError) as exc:
            logger.info("PiJuice battery not available: %s", exc)
            return False

    def _read(self) -> Reading:
        assert self.pijuice is not None
        try:
            batt = BatteryUtils.get_battery_status(self.pijuice)
        except OSError as exc:
            raise BatteryReadError(self.name, str(exc)) from exc
        return batt["is_discharging"], _clamp(batt["charge_level"] / 100)


def _clamp(level: float) -> float:
    return min(max(level, 0.0), 1.0)


def _initialize_pijuice() -> PiJuiceLike | None:
    """Open the PiJuice HAT if the library and hardware are available."""
    try:
        import pijuice  # type: ignore[import-not-found]

        return pijuice.PiJuice(1, 0x14)  # type: ignore[no-any-return]
    except Exception as exc:
        logger.debug("PiJuice not available: %s", exc)
        return None


def create_battery_source(
    backend: str,
    power_supply_dir: Path = Path("/sys/class/power_supply"),
    low_level: float = DEFAULT_LOW_LEVEL,
) -> PollingBatterySource:
    """Create the battery source for the configured backend.

    Args:
        backend: ``sysfs`` or ``pijuice``
        power_supply_dir: sysfs power supply directory
        low_level: Initial power-low threshold

    Returns:
        A polling battery source
    """
    if backend == "pijuice":
        return PiJuiceBatterySource(_initialize_pijuice(), low_level)
    if backend == "sysfs":
        return SysfsBatterySource(power_supply_dir, low_level)
    raise ValueError(f"Unknown battery backend: {backend}")
