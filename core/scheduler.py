from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable

log = logging.getLogger(__name__)

Sweep = Callable[[], Awaitable[Any]]


class SchedulerState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class Scheduler:
    """Recurring timer that runs a status sweep at a fixed interval.

    ``start`` runs one sweep immediately and then one per interval, measured
    from the start of the previous sweep. Sweeps never overlap: a sweep that
    outlasts the interval delays the next one.

    ``stop`` only prevents future sweeps. The sweep in flight when it is
    called is shielded from the cancellation and runs to completion;
    ``wait_idle()`` awaits it.
    """

    def __init__(self, sweep: Sweep, default_interval: float) -> None:
        self._sweep = sweep
        self._default_interval = default_interval
        self._timer: asyncio.Task[None] | None = None
        self._current: asyncio.Task[None] | None = None
        self._sweeps_started = 0

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.RUNNING if self._timer is not None else SchedulerState.STOPPED

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    @property
    def default_interval(self) -> float:
        return self._default_interval

    @property
    def sweeps_started(self) -> int:
        return self._sweeps_started

    def start(self, interval: float | None = None) -> bool:
        """Start ticking. Returns False (and warns) when already running.

        Must be called from within a running event loop.
        """
        if self._timer is not None:
            log.warning("Status scheduler already running")
            return False

        interval = self._default_interval if interval is None else interval
        if interval <= 0:
            raise ValueError("interval must be positive")

        self._timer = asyncio.create_task(self._run(interval), name="status-scheduler")
        log.info("Status scheduler started (interval=%gs)", interval)
        return True

    def stop(self) -> None:
        """Cancel the timer. No sweep starts after this returns."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        log.info("Status scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for the sweep in flight, if any, to finish."""
        current = self._current
        if current is not None and not current.done():
            await asyncio.wait({current})

    async def _run(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        while True:
            # a sweep left over from a previous start/stop cycle
            await self._join_current()

            next_tick = loop.time() + interval
            self._sweeps_started += 1
            self._current = asyncio.create_task(
                self._tick(), name=f"status-sweep-{self._sweeps_started}"
            )
            await self._join_current()
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def _join_current(self) -> None:
        if self._current is not None and not self._current.done():
            await asyncio.shield(self._current)

    async def _tick(self) -> None:
        try:
            await self._sweep()
        except Exception:
            log.exception("Scheduled status sweep failed")
