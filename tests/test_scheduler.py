import threading
from datetime import datetime, timedelta

import pytest

from src.scheduler import ScheduledJob, build_jobs, run_job_safely, run_scheduler


class FakeClock:
    """Clock that only moves when the scheduler sleeps."""

    def __init__(self, start: datetime):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


def test_next_run_from_cron_expression():
    job = ScheduledJob("scrape", "0 */2 * * *", lambda: None)
    assert job.schedule_from(datetime(2026, 3, 2, 9, 15)) == datetime(2026, 3, 2, 10, 0)
    assert not job.is_due(datetime(2026, 3, 2, 9, 59))
    assert job.is_due(datetime(2026, 3, 2, 10, 0))


def test_invalid_expression_rejected():
    with pytest.raises(ValueError):
        ScheduledJob("bad", "every two hours", lambda: None)


def test_run_job_safely_contains_errors():
    def boom():
        raise RuntimeError("job failed")

    assert run_job_safely(ScheduledJob("boom", "* * * * *", boom)) is False
    assert run_job_safely(ScheduledJob("ok", "* * * * *", lambda: None)) is True


def test_build_jobs_default_table():
    jobs = build_jobs(
        scrape=lambda: None, morning_digest=lambda: None, evening_digest=lambda: None,
        topic_sync=lambda: None,
        scrape_schedule="0 */2 * * *", morning_schedule="0 9 * * *",
        evening_schedule="0 18 * * *", topic_sync_schedule="0 */6 * * *",
    )
    assert [(j.name, j.expression) for j in jobs] == [
        ("scrape", "0 */2 * * *"),
        ("morning digest", "0 9 * * *"),
        ("evening digest", "0 18 * * *"),
        ("topic sync", "0 */6 * * *"),
    ]


def test_build_jobs_without_topic_sync():
    jobs = build_jobs(lambda: None, lambda: None, lambda: None, None,
                      "0 */2 * * *", "0 9 * * *", "0 18 * * *", "0 */6 * * *")
    assert "topic sync" not in [j.name for j in jobs]


def test_scheduler_runs_initial_job_then_due_jobs():
    clock = FakeClock(datetime(2026, 3, 2, 8, 30))
    ran: list[str] = []

    jobs = [
        ScheduledJob("scrape", "0 */2 * * *", lambda: ran.append("scrape")),
        ScheduledJob("morning digest", "0 9 * * *", lambda: ran.append("morning")),
    ]

    def failing_initial():
        ran.append("initial")
        raise RuntimeError("initial scrape failed")

    # 30 minutes in 60s steps reaches 09:00
    run_scheduler(jobs, initial_job=failing_initial, now_fn=clock, sleep_fn=clock.sleep,
                  max_iterations=32)

    assert ran == ["initial", "morning"]
    assert jobs[1].next_run == datetime(2026, 3, 3, 9, 0)
    assert max(clock.sleeps) <= 60


def test_failing_job_does_not_stop_loop():
    clock = FakeClock(datetime(2026, 3, 2, 9, 59))
    ran: list[str] = []

    def failing():
        ran.append("fail")
        raise RuntimeError("boom")

    jobs = [
        ScheduledJob("failing", "0 10 * * *", failing),
        ScheduledJob("other", "0 10 * * *", lambda: ran.append("other")),
    ]
    run_scheduler(jobs, now_fn=clock, sleep_fn=clock.sleep, max_iterations=3)

    assert ran == ["fail", "other"]


def test_stop_event_ends_loop():
    stop = threading.Event()
    stop.set()
    called: list[str] = []

    run_scheduler([ScheduledJob("x", "* * * * *", lambda: called.append("x"))],
                  now_fn=lambda: datetime(2026, 3, 2), sleep_fn=lambda s: None, stop_event=stop)

    assert called == []
