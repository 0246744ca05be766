"""
Long-running cron scheduler.
Runs the scrape, digest and topic-sync jobs on their cron expressions in a
single-threaded loop, so two jobs never run at the same time.
"""

import logging
import signal
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from croniter import croniter

logger = logging.getLogger(__name__)

# Longest single sleep, so a stop request is noticed promptly
MAX_SLEEP_SECONDS = 60.0


@dataclass
class ScheduledJob:
    name: str
    expression: str
    func: Callable[[], object]
    next_run: datetime | None = field(default=None, repr=False)

    def __post_init__(self):
        if not croniter.is_valid(self.expression):
            raise ValueError(f"Invalid cron expression for {self.name}: {self.expression!r}")

    def schedule_from(self, base: datetime) -> datetime:
        """Compute and remember the first fire time strictly after base."""
        self.next_run = croniter(self.expression, base).get_next(datetime)
        return self.next_run

    def is_due(self, now: datetime) -> bool:
        return self.next_run is not None and now >= self.next_run


def run_job_safely(job: ScheduledJob) -> bool:
    """Run one job; failures are logged and never escape the loop."""
    logger.info(f"[SCHEDULER] Running {job.name}...")
    started = time.monotonic()
    try:
        job.func()
    except Exception as e:
        logger.error(f"[SCHEDULER] Error in {job.name}: {e}")
        return False
    logger.info(f"[SCHEDULER] {job.name} done in {time.monotonic() - started:.1f}s")
    return True


def build_jobs(scrape: Callable[[], object],
               morning_digest: Callable[[], object],
               evening_digest: Callable[[], object],
               topic_sync: Callable[[], object] | None,
               scrape_schedule: str,
               morning_schedule: str,
               evening_schedule: str,
               topic_sync_schedule: str) -> list[ScheduledJob]:
    """The default job table. topic_sync may be None to leave it out."""
    jobs = [
        ScheduledJob("scrape", scrape_schedule, scrape),
        ScheduledJob("morning digest", morning_schedule, morning_digest),
        ScheduledJob("evening digest", evening_schedule, evening_digest),
    ]
    if topic_sync is not None:
        jobs.append(ScheduledJob("topic sync", topic_sync_schedule, topic_sync))
    else:
        logger.warning("[SCHEDULER] Topic sync disabled")
    return jobs


def install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum, _frame):
        logger.info(f"[SCHEDULER] Received signal {signum}, shutting down gracefully...")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run_scheduler(jobs: list[ScheduledJob],
                  initial_job: Callable[[], object] | None = None,
                  now_fn: Callable[[], datetime] = datetime.now,
                  sleep_fn: Callable[[float], object] | None = None,
                  stop_event: threading.Event | None = None,
                  max_iterations: int | None = None) -> None:
    """
    Run jobs until stop_event is set.

    initial_job runs once before the loop; its failure is logged like any
    other job. Due jobs run sequentially in table order. A slow job that
    overruns a later fire time causes that job to run once, not once per
    missed fire.
    """
    stop_event = stop_event or threading.Event()
    if sleep_fn is None:
        sleep_fn = stop_event.wait

    for job in jobs:
        job.schedule_from(now_fn())
        logger.info(f"[SCHEDULER] {job.name} scheduled: {job.expression} (next: {job.next_run})")

    if initial_job is not None:
        logger.info("[SCHEDULER] Running initial scrape and analysis...")
        run_job_safely(ScheduledJob("initial scrape", "* * * * *", initial_job))

    logger.info("[SCHEDULER] All schedules active! Press Ctrl+C to stop.")

    iterations = 0
    while not stop_event.is_set():
        if max_iterations is not None and iterations >= max_iterations:
            break
        iterations += 1

        now = now_fn()
        for job in jobs:
            if stop_event.is_set():
                break
            if job.is_due(now):
                run_job_safely(job)
                job.schedule_from(now_fn())
                logger.info(f"[SCHEDULER] Next {job.name}: {job.next_run}")

        if stop_event.is_set():
            break
        upcoming = min(job.next_run for job in jobs) if jobs else None
        if upcoming is None:
            wait = MAX_SLEEP_SECONDS
        else:
            wait = max(0.0, min((upcoming - now_fn()).total_seconds(), MAX_SLEEP_SECONDS))
        sleep_fn(wait)

    logger.info("[SCHEDULER] Scheduler stopped")
