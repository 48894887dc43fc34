"""
Daily job scheduler.

Named jobs map to async callables that take the run date. All registered
jobs fire once per local day at the configured time (00:01 America/New_York
by default). A job that raises is logged, reported on the event bus as
"job_failed", and does not stop the other jobs or the loop.

The service itself never schedules anything; callers inject it into a job:

    scheduler = JobScheduler(config.scheduler, event_bus=bus)
    scheduler.register("daily-payout", create_payout_job(service, bus))
    await scheduler.run()
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

import arrow

from src.config import SchedulerConfig
from src.engine.types import PayoutResult
from src.workers.event_bus import EventBus, JOB_FAILED, PAYOUT_PROCESSED, PERIOD_COMPLETED

logger = logging.getLogger(__name__)

JobFunc = Callable[[date], Awaitable[Any]]
Clock = Callable[[], arrow.Arrow]

DAILY_PAYOUT_JOB = "daily-payout"


@dataclass
class ScheduledJob:
    """A registered job and its run history."""

    name: str
    func: JobFunc
    description: str = ""
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None
    run_count: int = 0
    failure_count: int = 0


class JobScheduler:
    """
    Fires named async jobs once per day.

    Args:
        config: Fire time, timezone and poll interval
        event_bus: Receives "job_failed" events
        clock: Returns the current time; injectable for tests
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or SchedulerConfig()
        self.event_bus = event_bus
        self._clock = clock or (lambda: arrow.now(self.config.timezone))
        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False
        self._last_fire_date: Optional[date] = None

        hour, minute = self.config.payout_time.split(":")
        self._fire_hour = int(hour)
        self._fire_minute = int(minute)

    def register(self, name: str, func: JobFunc, description: str = "") -> None:
        """Register a job; re-registering a name replaces it."""
        self._jobs[name] = ScheduledJob(name=name, func=func, description=description)
        logger.info(f"Scheduled job '{name}' daily at {self.config.payout_time} {self.config.timezone}")

    def unregister(self, name: str) -> None:
        self._jobs.pop(name, None)

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    def get_job(self, name: str) -> ScheduledJob:
        if name not in self._jobs:
            raise KeyError(f"Unknown job: {name}")
        return self._jobs[name]

    def now(self) -> arrow.Arrow:
        return self._clock().to(self.config.timezone)

    def is_due(self, now: Optional[arrow.Arrow] = None) -> bool:
        """True once the fire time has passed today and today's run hasn't happened."""
        now = now or self.now()
        if self._last_fire_date == now.date():
            return False
        return (now.hour, now.minute) >= (self._fire_hour, self._fire_minute)

    async def trigger(self, name: str, run_date: Optional[date] = None) -> Any:
        """
        Run one job immediately.

        Returns:
            The job's return value, or None when it raised
        """
        job = self.get_job(name)
        run_date = run_date or self.now().date()
        logger.info(f"Running job '{name}' for {run_date}", extra={"job": name, "run_date": run_date.isoformat()})

        job.last_run = datetime.now()
        job.run_count += 1
        try:
            result = await job.func(run_date)
        except Exception as e:
            job.failure_count += 1
            job.last_error = str(e)
            logger.error(
                f"Job '{name}' failed: {e}",
                exc_info=True,
                extra={"job": name, "run_date": run_date.isoformat()},
            )
            if self.event_bus:
                await self.event_bus.emit(JOB_FAILED, {"job": name, "date": run_date, "error": str(e)})
            return None

        job.last_error = None
        logger.info(f"Completed job '{name}'", extra={"job": name, "run_date": run_date.isoformat()})
        return result

    async def run_all(self, run_date: Optional[date] = None) -> Dict[str, Any]:
        """Run every registered job in registration order."""
        run_date = run_date or self.now().date()
        results = {}
        for name in list(self._jobs):
            results[name] = await self.trigger(name, run_date)
        self._last_fire_date = run_date
        return results

    async def run(self) -> None:
        """
        Poll the clock and fire all jobs once per day.

        Runs until stop() is called or the task is cancelled.
        """
        logger.info(f"Scheduler started with {len(self._jobs)} jobs")
        self._running = True

        while self._running:
            try:
                now = self.now()
                if self.is_due(now):
                    await self.run_all(now.date())
                await asyncio.sleep(self.config.poll_seconds)
            except asyncio.CancelledError:
                logger.info("Scheduler cancelled")
                break

        self._running = False
        logger.info("Scheduler stopped")

    def stop(self) -> None:
        """Stop the run loop after the current poll."""
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running


def create_payout_job(service, event_bus: Optional[EventBus] = None) -> JobFunc:
    """
    Build the daily-payout job around a SimulationService.

    The service is synchronous, so the batch runs in a worker thread. Every
    credited payout is published as "payout_processed", and every payout that
    closed a period as "period_completed".
    """

    async def daily_payout(run_date: date) -> List[PayoutResult]:
        results = await asyncio.to_thread(service.process_all_due, run_date)
        processed = [r for r in results if r.processed]

        if event_bus:
            for result in processed:
                await event_bus.emit(PAYOUT_PROCESSED, result)
                if result.period_completed:
                    await event_bus.emit(PERIOD_COMPLETED, result)

        logger.info(
            f"Daily payout credited {len(processed)} days",
            extra={"run_date": run_date.isoformat(), "processed": len(processed), "attempted": len(results)},
        )
        return results

    return daily_payout
