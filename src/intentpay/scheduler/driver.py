"""SchedulerDriver - the single periodic task that ticks the scheduler."""

from __future__ import annotations

import asyncio

from intentpay.core.logging import get_logger
from intentpay.core.types import ExecutionOutcome
from intentpay.scheduler.scheduler import RecurringScheduler

logger = get_logger("scheduler.driver")


class SchedulerDriver:
    """
    Calls ``RecurringScheduler.tick`` every ``check_interval`` seconds.

    There is exactly one driver per scheduler; starting twice is a no-op.
    ``stop`` lets a tick that is already running finish, so a payment is
    never abandoned between submission and settlement.
    """

    def __init__(self, scheduler: RecurringScheduler, check_interval: float = 60.0) -> None:
        if check_interval <= 0:
            raise ValueError("check_interval must be positive")
        self._scheduler = scheduler
        self._check_interval = check_interval
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        """Completed ticks since the driver was created."""
        return self._ticks

    async def start(self) -> None:
        """Start the periodic loop."""
        if self.running:
            logger.debug("Scheduler driver already running")
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Scheduler automation started, checking every {self._check_interval}s")

    async def stop(self) -> None:
        """Stop the loop after the current tick, if any, completes."""
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Scheduler automation stopped")

    async def run_once(self) -> dict[str, ExecutionOutcome]:
        """Run a single tick. Errors are logged, never raised."""
        try:
            return await self._scheduler.tick()
        except Exception as e:
            logger.error(f"Scheduler tick failed: {e}")
            return {}
        finally:
            self._ticks += 1

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._check_interval)
            except asyncio.TimeoutError:
                pass
