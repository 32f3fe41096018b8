"""Periodic cache maintenance.

Two background jobs run while a Keystore is connected:
- full flush: empties the whole cache every ``auto_flush_interval`` seconds
- temporary flush: deletes keys under the temporary prefix every
  ``auto_temp_flush_interval`` seconds

Each job is an asyncio task owned by the keystore, started on connect()
and cancelled on close().
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

Action = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[None]]

DISABLED_INTERVAL = -1


def interval_enabled(interval: Optional[float]) -> bool:
    """None, 0 and DISABLED_INTERVAL all mean "do not schedule"."""
    return interval is not None and interval != DISABLED_INTERVAL and interval > 0


class PeriodicJob:
    """Run an async action every ``interval`` seconds until stopped.

    The first run happens one interval after start(). Action failures are
    logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        action: Action,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize a periodic job.

        Args:
            name: Job name used in log events
            interval: Seconds between runs
            action: Coroutine function to run
            sleep: Awaitable sleep, injectable for tests
        """
        if not interval_enabled(interval):
            raise ValueError(f"Job {name!r} needs a positive interval, got {interval}")

        self.name = name
        self.interval = interval
        self._action = action
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.runs = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background task (no-op if already running)."""
        if self.is_running:
            logger.warning("maintenance_job_already_running", job=self.name)
            return

        self._task = asyncio.create_task(self._loop(), name=f"keystore-{self.name}")
        logger.info("maintenance_job_started", job=self.name, interval=self.interval)

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        logger.info("maintenance_job_stopped", job=self.name, runs=self.runs)

    async def run_once(self) -> bool:
        """Run the action once. Returns False if it raised."""
        try:
            await self._action()
        except Exception as e:
            self.failures += 1
            logger.error(
                "maintenance_job_failed",
                job=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        finally:
            self.runs += 1

        return True

    async def _loop(self) -> None:
        while True:
            await self._sleep(self.interval)
            await self.run_once()


class MaintenanceScheduler:
    """Owns the full-flush and temporary-flush jobs of one keystore."""

    def __init__(
        self,
        flush_all: Action,
        flush_temporary: Action,
        full_flush_interval: Optional[float] = None,
        temp_flush_interval: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.jobs: dict[str, PeriodicJob] = {}

        if interval_enabled(full_flush_interval):
            self.jobs["full_flush"] = PeriodicJob(
                "full_flush", full_flush_interval, flush_all, sleep=sleep
            )

        if interval_enabled(temp_flush_interval):
            self.jobs["temp_flush"] = PeriodicJob(
                "temp_flush", temp_flush_interval, flush_temporary, sleep=sleep
            )

    @property
    def full_flush(self) -> Optional[PeriodicJob]:
        return self.jobs.get("full_flush")

    @property
    def temp_flush(self) -> Optional[PeriodicJob]:
        return self.jobs.get("temp_flush")

    @property
    def is_running(self) -> bool:
        return any(job.is_running for job in self.jobs.values())

    def start(self) -> None:
        for job in self.jobs.values():
            job.start()

    async def stop(self) -> None:
        for job in self.jobs.values():
            await job.stop()
