"""Scheduler for sync cycles and daily jobs.

This module provides:
- DailyRunMarker: "Once per day after hour H" bookkeeping
- DailyJob: A named daily job with its marker
- HourlyJob: A named job run at a fixed minute of every hour
- SyncScheduler: Interval sync cycles, daily jobs on a minute tick and
  hourly cron jobs
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class DailyRunMarker:
    """Remember the last day a job ran.

    A job is due once the configured hour has passed and it has not yet
    run today, so a process that was asleep at the exact minute still
    runs it, and never twice the same day.
    """

    def __init__(self, hour: int) -> None:
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be in 0-23, got {hour}")
        self.hour = hour
        self.last_run: date | None = None

    def due(self, now: datetime) -> bool:
        return now.hour >= self.hour and self.last_run != now.date()

    def mark(self, now: datetime) -> None:
        self.last_run = now.date()


@dataclass
class DailyJob:
    """A job run once a day.

    Attributes:
        name: Job name, used in logs.
        func: Callable to run.
        marker: Last-run bookkeeping.
        run_on_start: Also run once when the scheduler starts.
    """

    name: str
    func: Callable[[], Any]
    marker: DailyRunMarker
    run_on_start: bool = False


@dataclass
class HourlyJob:
    """A job run once an hour.

    Attributes:
        name: Job name, used in logs and as the job id suffix.
        func: Callable to run.
        minute: Minute past the hour to fire at.
    """

    name: str
    func: Callable[[], Any]
    minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be in 0-59, got {self.minute}")


class SyncScheduler:
    """Background scheduler for the sync service.

    Runs:
    - A sync cycle at startup, then every interval (never overlapping)
    - A minute tick firing due daily jobs (banner sync, GL export)
    - Hourly jobs on a cron trigger (hourly sales)

    Usage:
        scheduler = SyncScheduler(orchestrator.run_cycle, 10, daily_jobs, hourly_jobs)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        run_cycle: Callable[[], Any],
        interval_minutes: int,
        daily_jobs: Sequence[DailyJob] = (),
        hourly_jobs: Sequence[HourlyJob] = (),
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the scheduler.

        Args:
            run_cycle: Runs one sync cycle.
            interval_minutes: Minutes between cycles.
            daily_jobs: Jobs run once a day.
            hourly_jobs: Jobs run once an hour.
            clock: Local wall-clock source.
        """
        self._run_cycle = run_cycle
        self._interval_minutes = interval_minutes
        self._daily_jobs = list(daily_jobs)
        self._hourly_jobs = list(hourly_jobs)
        self._clock = clock
        self._cycle_lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def _cycle_job(self) -> None:
        """Job function for scheduled sync cycles."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous sync cycle still running, skipping")
            return
        try:
            self._run_cycle()
        except Exception:
            logger.exception("Error during scheduled sync cycle")
        finally:
            self._cycle_lock.release()

    def _run_daily(self, job: DailyJob) -> None:
        logger.info("Starting daily job %s", job.name)
        try:
            job.func()
        except Exception:
            logger.exception("Error during daily job %s", job.name)

    def _run_hourly(self, job: HourlyJob) -> None:
        logger.info("Starting hourly job %s", job.name)
        try:
            job.func()
        except Exception:
            logger.exception("Error during hourly job %s", job.name)

    def _daily_tick(self) -> None:
        """Job function firing due daily jobs."""
        now = self._clock()
        for job in self._daily_jobs:
            if job.marker.due(now):
                # Marked before running: a failed job is not retried every minute
                job.marker.mark(now)
                self._run_daily(job)

    def _startup_jobs(self) -> None:
        now = self._clock()
        for job in self._daily_jobs:
            if not job.run_on_start:
                continue
            if job.marker.due(now):
                job.marker.mark(now)
            self._run_daily(job)

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            return  # Already running

        self._scheduler = BackgroundScheduler()

        self._scheduler.add_job(
            self._cycle_job,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id="sync_cycle",
            name="Sync cycle",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
            replace_existing=True,
        )

        if self._daily_jobs:
            self._scheduler.add_job(
                self._startup_jobs,
                id="daily_startup",
                name="Daily jobs at startup",
                replace_existing=True,
            )
            self._scheduler.add_job(
                self._daily_tick,
                trigger=IntervalTrigger(minutes=1),
                id="daily_tick",
                name="Daily job tick",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        for job in self._hourly_jobs:
            self._scheduler.add_job(
                self._run_hourly,
                trigger=CronTrigger(minute=job.minute),
                args=[job],
                id=f"hourly_{job.name}",
                name=f"Hourly job {job.name}",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        self._scheduler.start()
        logger.info(
            "Sync scheduler started (every %d minutes, daily jobs: %s, hourly jobs: %s)",
            self._interval_minutes,
            ", ".join(f"{j.name}@{j.marker.hour:02d}:00" for j in self._daily_jobs) or "none",
            ", ".join(f"{j.name}@:{j.minute:02d}" for j in self._hourly_jobs) or "none",
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Sync scheduler stopped")

    def run_now(self) -> Any:
        """Run a sync cycle immediately (manual trigger).

        Waits for a running scheduled cycle to finish first.

        Returns:
            Whatever the cycle callable returns.
        """
        with self._cycle_lock:
            return self._run_cycle()
