"""Tests for the sync scheduler."""

from __future__ import annotations

import threading
from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest

from possync.sync.scheduler import DailyJob, DailyRunMarker, HourlyJob, SyncScheduler


class TestDailyRunMarker:
    """Tests for DailyRunMarker."""

    def test_rejects_invalid_hour(self) -> None:
        """Should refuse hours outside 0-23."""
        with pytest.raises(ValueError):
            DailyRunMarker(24)

    def test_not_due_before_hour(self) -> None:
        """Should not be due before the configured hour."""
        marker = DailyRunMarker(5)
        assert not marker.due(datetime(2024, 3, 1, 4, 59))

    def test_due_after_hour_once_per_day(self) -> None:
        """Should be due after the hour until marked for the day."""
        marker = DailyRunMarker(5)
        now = datetime(2024, 3, 1, 9, 30)

        assert marker.due(now)
        marker.mark(now)
        assert marker.last_run == date(2024, 3, 1)
        assert not marker.due(datetime(2024, 3, 1, 23, 0))
        assert marker.due(datetime(2024, 3, 2, 5, 0))


class TestSyncScheduler:
    """Tests for SyncScheduler job functions."""

    def test_cycle_job_swallows_errors(self) -> None:
        """Should log and continue when a cycle raises."""
        run_cycle = MagicMock(side_effect=RuntimeError("db down"))
        scheduler = SyncScheduler(run_cycle, 10)

        scheduler._cycle_job()
        scheduler._cycle_job()

        assert run_cycle.call_count == 2

    def test_cycle_job_skips_when_running(self) -> None:
        """Should not start a cycle while another one holds the lock."""
        run_cycle = MagicMock()
        scheduler = SyncScheduler(run_cycle, 10)

        scheduler._cycle_lock.acquire()
        try:
            scheduler._cycle_job()
        finally:
            scheduler._cycle_lock.release()

        run_cycle.assert_not_called()

    def test_run_now_waits_for_running_cycle(self) -> None:
        """Should run after the current cycle and return its result."""
        scheduler = SyncScheduler(lambda: "summary", 10)
        results: list[object] = []

        scheduler._cycle_lock.acquire()
        worker = threading.Thread(target=lambda: results.append(scheduler.run_now()))
        worker.start()
        worker.join(timeout=0.1)
        assert results == []
        scheduler._cycle_lock.release()
        worker.join(timeout=5)

        assert results == ["summary"]

    def test_daily_tick_runs_due_jobs_once(self) -> None:
        """Should run a due job once per day."""
        banner = MagicMock()
        gl_export = MagicMock()
        now = datetime(2024, 3, 1, 6, 0)
        scheduler = SyncScheduler(
            MagicMock(),
            10,
            [
                DailyJob("banner_sync", banner, DailyRunMarker(5)),
                DailyJob("gl_export", gl_export, DailyRunMarker(8)),
            ],
            clock=lambda: now,
        )

        scheduler._daily_tick()
        scheduler._daily_tick()

        banner.assert_called_once()
        gl_export.assert_not_called()

    def test_failed_daily_job_not_retried_same_day(self) -> None:
        """Should mark a failing job so it waits for the next day."""
        job = MagicMock(side_effect=RuntimeError("export failed"))
        now = datetime(2024, 3, 1, 9, 0)
        scheduler = SyncScheduler(
            MagicMock(), 10, [DailyJob("gl_export", job, DailyRunMarker(8))], clock=lambda: now
        )

        scheduler._daily_tick()
        scheduler._daily_tick()

        job.assert_called_once()

    def test_startup_runs_flagged_jobs(self) -> None:
        """Should run run_on_start jobs at startup even before their hour."""
        banner = MagicMock()
        gl_export = MagicMock()
        now = datetime(2024, 3, 1, 3, 0)
        banner_job = DailyJob("banner_sync", banner, DailyRunMarker(5), run_on_start=True)
        scheduler = SyncScheduler(
            MagicMock(),
            10,
            [banner_job, DailyJob("gl_export", gl_export, DailyRunMarker(8))],
            clock=lambda: now,
        )

        scheduler._startup_jobs()

        banner.assert_called_once()
        gl_export.assert_not_called()
        assert banner_job.marker.last_run is None

    def test_start_and_stop(self) -> None:
        """Should register cycle and daily jobs and shut down cleanly."""
        with patch("possync.sync.scheduler.BackgroundScheduler") as scheduler_cls:
            backend = scheduler_cls.return_value
            scheduler = SyncScheduler(
                MagicMock(), 15, [DailyJob("banner_sync", MagicMock(), DailyRunMarker(5))]
            )

            scheduler.start()
            scheduler.start()

            assert scheduler.running
            scheduler_cls.assert_called_once()
            job_ids = [c.kwargs["id"] for c in backend.add_job.call_args_list]
            assert job_ids == ["sync_cycle", "daily_startup", "daily_tick"]
            backend.start.assert_called_once()

            scheduler.stop()

            backend.shutdown.assert_called_once_with(wait=False)
            assert not scheduler.running

    def test_start_without_daily_jobs(self) -> None:
        """Should only register the cycle job."""
        with patch("possync.sync.scheduler.BackgroundScheduler") as scheduler_cls:
            scheduler = SyncScheduler(MagicMock(), 10)
            scheduler.start()

            backend = scheduler_cls.return_value
            assert [c.kwargs["id"] for c in backend.add_job.call_args_list] == ["sync_cycle"]
            scheduler.stop()

    def test_start_registers_hourly_jobs(self) -> None:
        """Should register each hourly job on a cron trigger at its minute."""
        with patch("possync.sync.scheduler.BackgroundScheduler") as scheduler_cls:
            scheduler = SyncScheduler(
                MagicMock(), 10, hourly_jobs=[HourlyJob("hourly_sales", MagicMock())]
            )
            scheduler.start()

            backend = scheduler_cls.return_value
            calls = backend.add_job.call_args_list
            assert [c.kwargs["id"] for c in calls] == ["sync_cycle", "hourly_hourly_sales"]
            trigger = calls[1].kwargs["trigger"]
            assert str(trigger.fields[trigger.FIELD_NAMES.index("minute")]) == "0"
            scheduler.stop()

    def test_hourly_job_swallows_errors(self) -> None:
        """Should log and continue when an hourly job raises."""
        job = HourlyJob("hourly_sales", MagicMock(side_effect=RuntimeError("pos down")))
        scheduler = SyncScheduler(MagicMock(), 10, hourly_jobs=[job])

        scheduler._run_hourly(job)
        scheduler._run_hourly(job)

        assert job.func.call_count == 2

    def test_hourly_job_rejects_invalid_minute(self) -> None:
        """Should refuse minutes outside 0-59."""
        with pytest.raises(ValueError):
            HourlyJob("hourly_sales", MagicMock(), minute=60)
