"""Power actuators (suspend, hibernate, power-off)."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Sequence
from typing import Final

from batterywatch.common.enums import PowerAction
from batterywatch.errors import ActuatorError
from batterywatch.protocols import PowerActuator

logger: Final = logging.getLogger(__name__)

SYSTEMCTL_VERBS: Final[dict[PowerAction, str]] = {
    PowerAction.SLEEP: "suspend",
    PowerAction.HIBERNATE: "hibernate",
    PowerAction.POWEROFF: "poweroff",
}


def _require_action(action: PowerAction) -> None:
    if action is PowerAction.NONE:
        raise ValueError("PowerAction.NONE cannot be executed")


class SystemdPowerActuator:
    """Requests power actions from systemd/logind via ``systemctl``."""

    def __init__(self, command_prefix: Sequence[str] = (), timeout: float = 10.0) -> None:
        """Initialize the actuator.

        Args:
            command_prefix: Prepended to every command, e.g. ``["sudo"]``
            timeout: Seconds to wait for systemctl to return
        """
        self.command_prefix = list(command_prefix)
        self.timeout = timeout

    def command_for(self, action: PowerAction) -> list[str]:
        """Return the command line that performs ``action``."""
        _require_action(action)
        return [*self.command_prefix, "systemctl", SYSTEMCTL_VERBS[action]]

    def run(self, action: PowerAction) -> None:
        """Issue the request, raising on failure.

        Raises:
            ActuatorError: If the command failed, timed out or is missing
        """
        cmd = self.command_for(action)
        logger.info("Running %s", " ".join(cmd))
        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            details = (exc.stderr or exc.stdout or "").strip()
            raise ActuatorError(action, f"exit {exc.returncode}: {details}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ActuatorError(action, f"timed out after {self.timeout}s") from exc
        except FileNotFoundError as exc:
            raise ActuatorError(action, f"command not found: {cmd[0]}") from exc

    def execute(self, action: PowerAction) -> bool:
        try:
            self.run(action)
        except ActuatorError as exc:
            logger.error("Power command failed: %s", exc)
            return False
        return True


class BackgroundPowerActuator:
    """Runs another actuator on a worker thread.

    ``execute`` returns as soon as the request is handed off, so a slow
    ``systemctl`` never delays the event loop. The delegate's outcome comes
    back to the loop thread, where an exception is logged. A refusal is
    already logged by the delegate.
    """

    def __init__(self, delegate: PowerActuator, loop: asyncio.AbstractEventLoop) -> None:
        self.delegate = delegate
        self.loop = loop
        self.last_task: asyncio.Task[bool] | None = None
        self._tasks: set[asyncio.Task[bool]] = set()

    def execute(self, action: PowerAction) -> bool:
        _require_action(action)
        task = self.loop.create_task(self._run(action), name=f"power-{action.value}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.last_task = task
        return True

    async def _run(self, action: PowerAction) -> bool:
        try:
            ok = await asyncio.to_thread(self.delegate.execute, action)
        except Exception as exc:
            logger.error("Power action %s failed: %s", action.value, exc)
            return False
        logger.debug("Power action %s %s", action.value, "issued" if ok else "not issued")
        return ok


class DryRunPowerActuator:
    """Logs power actions instead of performing them."""

    def __init__(self) -> None:
        self.requested: list[PowerAction] = []

    def execute(self, action: PowerAction) -> bool:
        _require_action(action)
        self.requested.append(action)
        logger.warning("Dry run: would %s now", SYSTEMCTL_VERBS[action])
        return True


def create_power_actuator(
    loop: asyncio.AbstractEventLoop,
    dry_run: bool = False,
    command_prefix: Sequence[str] = (),
) -> PowerActuator:
    """Create the actuator used by the watcher.

    Args:
        loop: Event loop that collects the outcome of background requests
        dry_run: Log actions instead of executing them
        command_prefix: Prepended to systemctl commands

    Returns:
        A PowerActuator implementation
    """
    if dry_run:
        return DryRunPowerActuator()
    return BackgroundPowerActuator(SystemdPowerActuator(command_prefix), loop)
