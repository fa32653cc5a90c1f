# filepath: src/batterywatch/app.py
"""Application wiring for the battery watcher."""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Final

from batterywatch.countdown import CountdownController
from batterywatch.loop import PeriodicCall, close_loop
from batterywatch.notify import LoggingSink, MultiSink, NotifySendSink
from batterywatch.power import create_power_actuator
from batterywatch.protocols import PowerActuator, PresentationSink
from batterywatch.settings.store import YamlConfigStore
from batterywatch.settings.user import WatchSettings
from batterywatch.system.battery import PollingBatterySource, create_battery_source

logger: Final = logging.getLogger(__name__)


class BatteryWatcher:
    """Main application object.

    Builds every component, subscribes them to each other and runs the event
    loop:
    - the config store is polled for file changes and feeds the policy to
      the countdown, the low-level threshold to the battery source and the
      icon mode to the sink
    - the battery source is polled and feeds snapshots to the countdown
    - the countdown drives the sink and the power actuator

    Every dependency can be injected, which is how the tests run the whole
    watcher in simulated time.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        battery: PollingBatterySource | None = None,
        actuator: PowerActuator | None = None,
        sink: PresentationSink | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        dry_run: bool = False,
        notifications: bool | None = None,
        debug: bool = False,
    ) -> None:
        """Initialize the watcher.

        Args:
            config_path: Path to config.yaml (searches default locations if None)
            battery: Optional battery source
            actuator: Optional power actuator
            sink: Optional presentation sink
            loop: Optional asyncio event loop (a new one is created and closed
                by ``run`` if None)
            dry_run: Log power actions instead of executing them
            notifications: Override the ``notifications`` setting
            debug: Enable debug logging
        """
        # Configure logging
        logging.basicConfig(
            level=logging.DEBUG if debug else logging.INFO,
            format="%(asctime)s [%(levelname)s] %(message)s",
        )

        # A missing or invalid config leaves the store on the disabled policy
        self.store = YamlConfigStore(config_path)
        self.store.reload()
        settings = self.store.settings

        self._owns_loop = loop is None
        self.loop = loop or asyncio.new_event_loop()
        self.battery = battery or create_battery_source(
            settings.battery_backend,
            settings.power_supply_dir,
            settings.power_low_level,
        )
        self.actuator = actuator or create_power_actuator(
            self.loop, dry_run, settings.command_prefix
        )
        self.sink = sink or self._default_sink(settings, notifications)

        self.controller = CountdownController(
            battery=self.battery,
            config=self.store,
            actuator=self.actuator,
            sink=self.sink,
            loop=self.loop,
        )

        self._battery_timer: PeriodicCall | None = None
        self._config_timer: PeriodicCall | None = None
        self._started = False

    def _default_sink(self, settings: WatchSettings, notifications: bool | None) -> PresentationSink:
        show = settings.notifications if notifications is None else notifications
        if show:
            return MultiSink([LoggingSink(), NotifySendSink(self.loop)])
        return LoggingSink()

    def start(self) -> None:
        """Wire components together and schedule polling. Idempotent."""
        if self._started:
            return
        self._started = True

        if self.battery.have_battery():
            self.battery.set_low_level(self.store.current_policy().low_level_threshold)
            self.battery.poll()
        else:
            self.sink.on_no_battery_detected()

        # The countdown subscribes first so it already has the new policy when
        # a threshold change makes the battery source report a new snapshot
        self.controller.start()
        self.store.on_change(self._settings_changed)
        self.sink.on_icon_mode(self.store.icon_mode())

        self._schedule_polling(self.store.settings)

    def _settings_changed(self) -> None:
        self.battery.set_low_level(self.store.current_policy().low_level_threshold)
        self.sink.on_icon_mode(self.store.icon_mode())
        self._schedule_polling(self.store.settings)

    def _schedule_polling(self, settings: WatchSettings) -> None:
        if self.battery.have_battery():
            self._battery_timer = self._reschedule(
                self._battery_timer, settings.battery_poll_seconds, self.battery.poll
            )
        self._config_timer = self._reschedule(
            self._config_timer, settings.config_poll_seconds, self.store.poll
        )

    def _reschedule(
        self, timer: PeriodicCall | None, interval: float, callback: Callable[[], object]
    ) -> PeriodicCall:
        if timer is not None and not timer.cancelled and timer.interval == interval:
            return timer
        if timer is not None:
            timer.cancel()
        logger.debug("Polling %s every %.1fs", getattr(callback, "__qualname__", callback), interval)
        return PeriodicCall(self.loop, interval, callback)

    def run(self) -> None:
        """Start the watcher and block until stopped."""
        self.start()
        signals: tuple[signal.Signals, ...] = ()
        if threading.current_thread() is threading.main_thread():
            signals = (signal.SIGTERM, signal.SIGINT)
        for sig in signals:
            self.loop.add_signal_handler(sig, self._handle_signal, sig)

        logger.info("Battery watcher started (config: %s)", self.store.path or "none")
        try:
            self.loop.run_forever()
        finally:
            for sig in signals:
                self.loop.remove_signal_handler(sig)
            if self._owns_loop:
                close_loop(self.loop)
        logger.info("Battery watcher stopped")

    def stop(self) -> None:
        """Stop the event loop. Safe to call from any thread."""
        self.loop.call_soon_threadsafe(self.loop.stop)

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received signal %s, shutting down", sig.name)
        self.loop.stop()
