"""Task manager lifecycle — start, stop, register, unregister.

The ``TaskManager`` owns a set of ``CronJob`` definitions and runs each on
its own asyncio task.  Jobs can be registered and unregistered while the
manager is running, which is how the flip poller is switched on only while
something is pending.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from flip_manager.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CronJob:
    """A recurring background job."""

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""


class TaskManager:
    """Manages asyncio-based cron jobs.

    Usage::

        tm = TaskManager(metrics=engine_metrics)
        tm.register("flip_reconciliation", CronJob(handler=..., period=10))
        await tm.start()
        ...
        tm.unregister("flip_reconciliation")
        await tm.stop()
    """

    def __init__(self, *, metrics: EngineMetrics | None = None) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._busy: set[CronJob] = set()
        self._draining: set[asyncio.Task[None]] = set()
        self._running = False
        self._metrics = metrics

    @property
    def is_running(self) -> bool:
        """Whether the task manager is currently running."""
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs (name → CronJob)."""
        return dict(self._jobs)

    def is_registered(self, name: str) -> bool:
        return name in self._jobs

    def register(self, name: str, job: CronJob) -> None:
        """Register a cron job, replacing any job with the same name.

        If the manager is already running the job is started immediately.
        """
        if name in self._jobs:
            self.unregister(name)
        resolved = CronJob(handler=job.handler, period=job.period, name=name)
        self._jobs[name] = resolved
        if self._running:
            self._tasks[name] = asyncio.create_task(self._run_loop(resolved))
        logger.debug("Registered cron job %r (every %ss)", name, job.period)

    def unregister(self, name: str) -> None:
        """Remove a job and stop its timer.

        A job that is sleeping is cancelled.  A job whose handler is running
        finishes that run and then exits.
        """
        job = self._jobs.pop(name, None)
        task = self._tasks.pop(name, None)
        if job is None:
            return
        if task is not None:
            if job in self._busy:
                self._draining.add(task)
                task.add_done_callback(self._draining.discard)
            else:
                task.cancel()
        logger.debug("Unregistered cron job %r", name)

    async def start(self) -> None:
        """Start all registered cron jobs."""
        if self._running:
            return
        self._running = True
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._run_loop(job))
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Cancel all running jobs and wait for cleanup."""
        if not self._running:
            return
        self._running = False
        tasks = [*self._tasks.values(), *self._draining]
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for r in results:
            if isinstance(r, Exception) and not isinstance(r, asyncio.CancelledError):
                logger.error("Task error during shutdown: %s", r)
        self._tasks.clear()
        self._draining.clear()
        self._busy.clear()
        logger.info("TaskManager stopped")

    async def _run_loop(self, job: CronJob) -> None:
        """Repeatedly execute *job* every *job.period* seconds."""
        name = job.name or "unnamed"
        while self._is_current(job):
            try:
                await asyncio.sleep(job.period)
                if not self._is_current(job):
                    break
                self._busy.add(job)
                try:
                    if self._metrics:
                        with self._metrics.track_cron(name):
                            await job.handler()
                    else:
                        await job.handler()
                finally:
                    self._busy.discard(job)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Cron job %r failed", name)

    def _is_current(self, job: CronJob) -> bool:
        return self._running and self._jobs.get(job.name) is job
