"""Low-battery countdown.

The controller is the only component that decides whether and when a power
action fires. It arms when the battery reports power-low, ticks while armed
to publish the remaining time, and either cancels (condition cleared, action
disabled) or fires the configured action exactly once.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Final

from batterywatch.common.enums import CountdownPhase, PowerAction
from batterywatch.errors import ConfigUnavailableError
from batterywatch.loop import PeriodicCall
from batterywatch.models.battery import BatteryState, CountdownState
from batterywatch.models.policy import ActionPolicy
from batterywatch.protocols import PowerActuator, PresentationSink
from batterywatch.settings.store import ConfigStore
from batterywatch.system.battery import BatterySource

logger: Final = logging.getLogger(__name__)

TICK_INTERVAL: Final = 0.1


class CountdownController:
    """Arm/tick/cancel/fire state machine for the low-battery action.

    All entry points (battery changes, config changes, ticks) run on the
    same event loop, so the countdown state needs no locking.

    Transitions:
    - IDLE -> ARMED: battery reports power-low, nothing armed, action != NONE
    - ARMED -> ARMED: tick before the deadline, progress goes to the sink
    - ARMED -> IDLE: power-low cleared, or action set to NONE
    - ARMED -> FIRING -> IDLE: deadline reached, action executed once

    A repeated power-low report while armed never moves the deadline, and a
    changed warning time only applies to the next countdown.
    """

    def __init__(
        self,
        battery: BatterySource,
        config: ConfigStore,
        actuator: PowerActuator,
        sink: PresentationSink,
        loop: asyncio.AbstractEventLoop,
        tick_interval: float = TICK_INTERVAL,
    ) -> None:
        """Initialize the controller in the IDLE state.

        Args:
            battery: Source of battery snapshots
            config: Source of the action policy
            actuator: Executes the power action when the countdown expires
            sink: Receives progress and battery snapshots
            loop: Event loop that runs the countdown tick
            tick_interval: Seconds between ticks while armed
        """
        self.battery = battery
        self.config = config
        self.actuator = actuator
        self.sink = sink
        self.loop = loop
        self.tick_interval = tick_interval

        self._state = CountdownState()
        self._timer: PeriodicCall | None = None
        self._firing = False
        self._policy = ActionPolicy.disabled()
        self._battery_state = BatteryState.absent()
        self.last_result: bool | None = None

    # ---- read-only views ----
    @property
    def state(self) -> CountdownState:
        return self._state

    @property
    def phase(self) -> CountdownPhase:
        if self._firing:
            return CountdownPhase.FIRING
        return CountdownPhase.ARMED if self._state.armed else CountdownPhase.IDLE

    @property
    def policy(self) -> ActionPolicy:
        return self._policy

    @property
    def ticking(self) -> bool:
        """Whether the tick timer is currently scheduled."""
        return self._timer is not None and not self._timer.cancelled

    def remaining_seconds(self) -> int:
        """Whole seconds until the action fires (0 when idle)."""
        if not self._state.armed:
            return 0
        return _whole_seconds(self._state.remaining(self.loop.time()))

    # ---- event handlers ----
    def start(self) -> None:
        """Subscribe to battery and config changes and evaluate current state."""
        self.battery.on_change(self.battery_changed)
        self.config.on_change(self.settings_changed)
        self.settings_changed()
        self.battery_changed()

    def settings_changed(self) -> None:
        """Re-read the whole policy.

        An unreadable configuration disables the action until a later read
        succeeds. A running countdown picks up the change on its next tick.
        """
        try:
            policy = self.config.current_policy()
        except ConfigUnavailableError as exc:
            logger.warning("Configuration unavailable, power actions disabled: %s", exc)
            policy = ActionPolicy.disabled()

        if policy != self._policy:
            logger.debug(
                "Policy: action=%s warning=%ds level=%.2f",
                policy.action.value,
                policy.warning_lead_seconds,
                policy.low_level_threshold,
            )
        self._policy = policy

    def battery_changed(self) -> None:
        """Handle a new battery snapshot."""
        state = self.battery.current_state()
        self._battery_state = state

        logger.debug(
            "Battery changed: discharging=%s level=%s power_low=%s armed=%s",
            state.discharging,
            state.formatted_level,
            state.power_low,
            self._state.armed,
        )

        if state.power_low:
            # Re-triggers while armed keep the original deadline
            if not self._state.armed and self._policy.enabled:
                self._arm()
        elif self._state.armed:
            self._cancel("battery no longer low")

        self.sink.on_battery_snapshot(state)

    # ---- transitions ----
    def _arm(self) -> None:
        lead = self._policy.warning_lead_seconds
        self._state = CountdownState(deadline=self.loop.time() + lead)
        self._timer = PeriodicCall(self.loop, self.tick_interval, self._tick)
        logger.info(
            "Battery low (%s): %s in %d seconds",
            self._battery_state.formatted_level,
            self._policy.action.value,
            lead,
        )

    def _tick(self) -> None:
        if not self._state.armed:
            self._cancel("countdown cleared")
            return
        if not self._policy.enabled:
            self._cancel("power-low action disabled")
            return
        if not self._battery_state.power_low:
            self._cancel("battery no longer low")
            return

        remaining = self._state.remaining(self.loop.time())
        if remaining > 0:
            self.sink.on_progress(self._policy.action, _whole_seconds(remaining))
        else:
            self._fire(self._policy.action)

    def _cancel(self, reason: str) -> None:
        was_armed = self._state.armed
        self._stop_timer()
        self._state = CountdownState()
        if was_armed:
            logger.info("Countdown cancelled: %s", reason)

    def _fire(self, action: PowerAction) -> None:
        self._firing = True
        self._stop_timer()
        self._state = CountdownState()
        logger.info("Countdown expired, requesting %s", action.value)

        try:
            ok = self.actuator.execute(action)
        except Exception as exc:
            logger.error("Power action %s failed: %s", action.value, exc)
            ok = False
        else:
            if not ok:
                logger.error("Power action %s was refused", action.value)
        finally:
            self._firing = False

        # One attempt per countdown: a new one needs a fresh power-low report
        self.last_result = ok

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _whole_seconds(remaining: float) -> int:
    # Millisecond rounding keeps float noise from adding a second
    return max(1, math.ceil(round(remaining, 3)))
