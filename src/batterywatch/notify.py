"""Presentation sinks: logging and desktop notifications."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections import deque
from collections.abc import Iterable
from typing import Final, NamedTuple

from batterywatch.common.enums import PowerAction
from batterywatch.models.battery import BatteryState
from batterywatch.protocols import PresentationSink

logger: Final = logging.getLogger(__name__)

APP_NAME: Final = "batterywatch"
NOTIFICATION_TIMEOUT_MS: Final = 2000


class LoggingSink:
    """Sink that writes everything to the log."""

    def on_progress(self, action: PowerAction, remaining_seconds: int) -> None:
        logger.debug(action.progress_text.format(remaining_seconds))

    def on_battery_snapshot(self, state: BatteryState) -> None:
        logger.debug(
            "Battery %s%s%s",
            state.formatted_level,
            " discharging" if state.discharging else "",
            " (low)" if state.power_low else "",
        )

    def on_no_battery_detected(self) -> None:
        logger.warning("No battery found - actions on power low will not work")

    def on_icon_mode(self, use_theme_icons: bool) -> None:
        logger.debug("Icon mode: %s", "theme" if use_theme_icons else "built-in")


class _Notification(NamedTuple):
    title: str
    body: str
    urgency: str
    replace: bool


class NotifySendSink:
    """Shows the countdown as a critical desktop notification.

    One notification is kept on screen and updated in place (``notify-send
    -r``) each time the remaining whole seconds change.

    With a loop, ``notify-send`` runs on a worker thread one message at a
    time, so a slow notification daemon never delays the countdown. A queued
    progress message is replaced by a newer one. Without a loop, messages
    are sent inline.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        icon: str = "battery-caution",
        timeout_ms: int = NOTIFICATION_TIMEOUT_MS,
    ) -> None:
        self.loop = loop
        self.icon = icon
        self.timeout_ms = timeout_ms
        self.use_theme_icons = False
        self._notification_id: int | None = None
        self._last_shown: tuple[PowerAction, int] | None = None
        self._queue: deque[_Notification] = deque()
        self._worker: asyncio.Task[None] | None = None

    def on_progress(self, action: PowerAction, remaining_seconds: int) -> None:
        if self._last_shown == (action, remaining_seconds):
            return
        self._last_shown = (action, remaining_seconds)
        self._dispatch(
            _Notification("Power low", action.progress_text.format(remaining_seconds), "critical", True)
        )

    def on_battery_snapshot(self, state: BatteryState) -> None:
        if not state.power_low:
            self._last_shown = None

    def on_no_battery_detected(self) -> None:
        self._dispatch(
            _Notification(
                "No battery!",
                "Could not find data about any battery - actions on power low will not work",
                "normal",
                False,
            )
        )

    def on_icon_mode(self, use_theme_icons: bool) -> None:
        self.use_theme_icons = use_theme_icons

    def _dispatch(self, message: _Notification) -> None:
        if self.loop is None:
            self.send(*message)
            return

        if self._queue and self._queue[-1].replace and message.replace:
            self._queue[-1] = message
        else:
            self._queue.append(message)
        if self._worker is None or self._worker.done():
            self._worker = self.loop.create_task(self._drain(), name="notify-send")

    async def _drain(self) -> None:
        while self._queue:
            message = self._queue.popleft()
            await asyncio.to_thread(self.send, *message)

    def build_command(self, title: str, body: str, urgency: str, replace: bool = True) -> list[str]:
        """Return the notify-send command line for one notification."""
        cmd = [
            "notify-send",
            "-a",
            APP_NAME,
            "-u",
            urgency,
            "-t",
            str(self.timeout_ms),
            "-i",
            self.icon if self.use_theme_icons else "dialog-warning",
            "-p",
        ]
        if replace and self._notification_id is not None:
            cmd += ["-r", str(self._notification_id)]
        return [*cmd, title, body]

    def send(self, title: str, body: str, urgency: str = "critical", replace: bool = True) -> None:
        """Send a notification via notify-send.

        Failures are logged; a missing notification daemon must not stop the
        countdown.
        """
        cmd = self.build_command(title, body, urgency, replace)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("notify-send unavailable: %s", exc)
            return

        if result.returncode != 0:
            logger.debug("notify-send exited %s: %s", result.returncode, result.stderr.strip())
            return
        if replace:
            try:
                self._notification_id = int(result.stdout.strip())
            except ValueError:
                self._notification_id = None


class MultiSink:
    """Forwards every call to several sinks."""

    def __init__(self, sinks: Iterable[PresentationSink]) -> None:
        self.sinks = list(sinks)

    def on_progress(self, action: PowerAction, remaining_seconds: int) -> None:
        for sink in self.sinks:
            sink.on_progress(action, remaining_seconds)

    def on_battery_snapshot(self, state: BatteryState) -> None:
        for sink in self.sinks:
            sink.on_battery_snapshot(state)

    def on_no_battery_detected(self) -> None:
        for sink in self.sinks:
            sink.on_no_battery_detected()

    def on_icon_mode(self, use_theme_icons: bool) -> None:
        for sink in self.sinks:
            sink.on_icon_mode(use_theme_icons)
