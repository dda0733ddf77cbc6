"""
core/scheduler.py -- Periodic background jobs bound to an engine's lifecycle.

Each job is an asyncio task that sleeps for its interval and then runs its
body. Bodies may be plain functions or coroutine functions. The loop catches
and logs every exception from the body: a failing cleanup must never take the
process down or stop the next tick.

run_once() executes the body immediately, with the same error isolation, so
tests can step a job deterministically without waiting for the timer.

Usage:
    job = PeriodicJob("threat-cleanup", 900, engine.cleanup_old_threats)
    job.start()          # requires a running event loop
    await job.run_once()
    await job.stop()
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

logger = logging.getLogger("sentinelops.scheduler")

JobBody = Callable[[], Union[Any, Awaitable[Any]]]


class PeriodicJob:
    def __init__(self, name: str, interval_seconds: float, body: JobBody) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Job {name!r} needs a positive interval, got {interval_seconds}")
        self.name = name
        self.interval = interval_seconds
        self._body = body
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=f"sentinelops:{self.name}")
        logger.debug("Started job %s (every %.0fs)", self.name, self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Stopped job %s", self.name)

    async def run_once(self) -> bool:
        """Run the body now. Returns False if it raised (the error is logged)."""
        try:
            result = self._body()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled job %s failed", self.name)
            return False
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()


async def stop_all(jobs: list[PeriodicJob]) -> None:
    for job in jobs:
        await job.stop()
