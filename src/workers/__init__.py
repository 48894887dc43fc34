"""
Workers package for scheduled simulation jobs.

- EventBus: Async pub/sub for payout and job notifications
- JobScheduler: Fires named jobs once per day at a configured time

Usage:
    from src.workers import EventBus, JobScheduler, create_payout_job

    bus = EventBus()
    scheduler = JobScheduler(config.scheduler, event_bus=bus)
    scheduler.register("daily-payout", create_payout_job(service, bus))
    await asyncio.gather(bus.run(), scheduler.run())
"""

from src.workers.event_bus import (
    EventBus,
    Event,
    get_event_bus,
    reset_event_bus,
    JOB_FAILED,
    PAYOUT_PROCESSED,
    PERIOD_COMPLETED,
)
from src.workers.scheduler import (
    DAILY_PAYOUT_JOB,
    JobScheduler,
    ScheduledJob,
    create_payout_job,
)

__all__ = [
    # Event Bus
    "EventBus",
    "Event",
    "get_event_bus",
    "reset_event_bus",
    "JOB_FAILED",
    "PAYOUT_PROCESSED",
    "PERIOD_COMPLETED",
    # Scheduler
    "DAILY_PAYOUT_JOB",
    "JobScheduler",
    "ScheduledJob",
    "create_payout_job",
]
