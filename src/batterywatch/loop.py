"""asyncio helpers for the battery watcher.

Battery polls, config polls and countdown ticks all run as callbacks on one
asyncio event loop, so no two state transitions ever run concurrently.
Blocking work (power commands, notifications) is handed to worker threads
with ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import logging
import selectors
from collections.abc import Callable
from typing import Any, Final

logger: Final = logging.getLogger(__name__)


class PeriodicCall:
    """Run ``callback`` every ``interval`` seconds on an asyncio loop.

    Runs are scheduled at ``start + n * interval`` so they do not drift when
    callbacks run late. Runs missed while the loop was busy are skipped.
    An exception from the callback is logged and the next run still happens.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], Any],
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.loop = loop
        self.interval = interval
        self.callback = callback
        self.cancelled = False
        self._start = loop.time()
        self._count = 1
        self._handle = loop.call_at(self._start + interval, self._run)

    def cancel(self) -> None:
        """Prevent any further runs."""
        self.cancelled = True
        self._handle.cancel()

    def _run(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("Unhandled error in periodic callback %r", self.callback)
        if self.cancelled:
            return

        now = self.loop.time()
        self._count += 1
        if self._start + self._count * self.interval <= now:
            self._count = int((now - self._start) // self.interval) + 1
        self._handle = self.loop.call_at(self._start + self._count * self.interval, self._run)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else f"every {self.interval}s"
        return f"<PeriodicCall {getattr(self.callback, '__qualname__', self.callback)} {state}>"


def close_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel leftover tasks, wait for worker threads and close ``loop``."""
    tasks = asyncio.all_tasks(loop)
    for task in tasks:
        task.cancel()
    if tasks:
        loop.run_until_complete(asyncio.gather(*tasks, return_exceptions=True))
    loop.run_until_complete(loop.shutdown_asyncgens())
    loop.run_until_complete(loop.shutdown_default_executor())
    loop.close()


class ManualClock:
    """Clock whose time only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def time(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _ManualClockSelector(selectors.DefaultSelector):
    """Selector that jumps the clock forward instead of waiting for timers."""

    def __init__(self, clock: ManualClock) -> None:
        super().__init__()
        self._clock = clock

    def select(self, timeout: float | None = None) -> list[tuple[selectors.SelectorKey, int]]:
        if timeout is None:
            # Nothing scheduled: only a worker thread can wake the loop
            return super().select(None)
        events = super().select(0)
        if not events and timeout > 0:
            self._clock.advance(timeout)
        return events


class ManualClockEventLoop(asyncio.SelectorEventLoop):
    """asyncio loop running in simulated time.

    Waiting for the next timer advances the ``ManualClock`` instead of
    sleeping, so minutes of countdown run instantly. Worker threads and
    ``call_soon_threadsafe`` behave as on a normal loop.
    """

    def __init__(self, clock: ManualClock | None = None) -> None:
        self.clock = clock or ManualClock()
        super().__init__(selector=_ManualClockSelector(self.clock))

    def time(self) -> float:
        return self.clock.time()

    def run_for(self, seconds: float) -> None:
        """Run for ``seconds`` of simulated time, then return."""
        self.run_until_complete(asyncio.sleep(seconds))
