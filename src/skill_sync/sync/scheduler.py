"""Interval scheduler that never lets two sync runs overlap."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SchedulerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


class AlreadyRunning(Exception):
    """A manual trigger arrived while a run was in progress."""


class SyncScheduler(Generic[T]):
    """Runs ``job`` every ``interval_seconds`` plus on demand.

    Timer fires that land while a run is in progress are dropped and
    counted in ``skipped_fires``; they are never queued. Manual triggers
    during a run raise ``AlreadyRunning`` instead.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[T]],
        interval_seconds: float,
        run_on_start: bool = True,
        enabled: bool = True,
    ) -> None:
        """Initialize scheduler.

        Args:
            job: Coroutine function performing one run.
            interval_seconds: Time between timer fires.
            run_on_start: Run once immediately when started.
            enabled: Arm the recurring timer on start.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._job = job
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start
        self.enabled = enabled

        self._state = SchedulerState.IDLE
        self._skipped_fires = 0
        self._last_started: datetime | None = None
        self._next_fire_at: datetime | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._runs: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    @property
    def is_armed(self) -> bool:
        return self._timer_task is not None

    @property
    def skipped_fires(self) -> int:
        return self._skipped_fires

    @property
    def last_started(self) -> datetime | None:
        return self._last_started

    @property
    def next_fire_at(self) -> datetime | None:
        return self._next_fire_at if self.is_armed else None

    def _begin(self) -> None:
        # Must run before any await so a concurrent trigger sees RUNNING.
        self._state = SchedulerState.RUNNING
        self._last_started = datetime.now(tz=UTC)

    async def _execute(self) -> T:
        try:
            return await self._job()
        finally:
            self._state = SchedulerState.IDLE

    async def _execute_logged(self) -> None:
        try:
            await self._execute()
        except Exception:
            logger.exception("Scheduled sync run failed")

    async def trigger_now(self) -> T:
        """Run the job immediately, independent of the timer.

        Raises:
            AlreadyRunning: A run is already in progress.
        """
        if self.is_running:
            raise AlreadyRunning("a sync run is already in progress")
        self._begin()
        return await self._execute()

    def fire(self) -> bool:
        """Handle one timer tick. Returns True if a run was started."""
        if self.is_running:
            self._skipped_fires += 1
            logger.warning("Timer fired during a running sync, skipping (%d skipped)", self._skipped_fires)
            return False

        self._begin()
        task = asyncio.create_task(self._execute_logged())
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return True

    async def _timer_loop(self) -> None:
        while True:
            self._next_fire_at = datetime.now(tz=UTC) + timedelta(seconds=self.interval_seconds)
            await asyncio.sleep(self.interval_seconds)
            logger.info("Scheduled sync triggered")
            self.fire()

    async def start(self) -> None:
        """Run once if configured, then arm the recurring timer."""
        if self._timer_task is not None:
            logger.info("Scheduler already started")
            return
        if not self.enabled:
            logger.info("Scheduler disabled, only manual triggers will run")
            return

        if self.run_on_start:
            try:
                await self.trigger_now()
            except AlreadyRunning:
                logger.info("Startup sync skipped, a run is already in progress")
            except Exception:
                logger.exception("Startup sync failed")

        self._timer_task = asyncio.create_task(self._timer_loop())
        logger.info("Scheduler started (interval: %d seconds)", self.interval_seconds)

    async def stop(self) -> None:
        """Disarm the timer. A run already in progress is left to finish."""
        if self._timer_task is None:
            return
        self._timer_task.cancel()
        try:
            await self._timer_task
        except asyncio.CancelledError:
            pass
        self._timer_task = None
        self._next_fire_at = None
        logger.info("Scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for timer-started runs that are still in flight."""
        if self._runs:
            await asyncio.gather(*self._runs, return_exceptions=True)
