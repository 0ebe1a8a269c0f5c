"""Tests for the phase runner."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from unittest.mock import patch

import pytest

from possync.client.errors import ApiError, AuthError
from possync.core.types import LocationConfig, PhaseResult, SyncCounts, SyncPhase
from possync.sync.runner import MonotonicClock, PhaseRunner
from possync.sync.tasks.base import PerLocationSyncTask


def make_locations(*names: str) -> list[LocationConfig]:
    """Create one LocationConfig per name, the name doubling as id."""
    return [LocationConfig(name, None, name, f"key-{name}") for name in names]


class ScriptedTask(PerLocationSyncTask):
    """Task whose outcome per location is scripted: a count or an exception."""

    phase = SyncPhase.INVENTORY

    def __init__(
        self,
        outcomes: dict[str, int | Exception],
        prepare_error: Exception | None = None,
    ) -> None:
        self.outcomes = outcomes
        self.prepare_error = prepare_error
        self.attempted: list[str] = []
        self.threads: set[str] = set()
        self._lock = threading.Lock()

    def prepare(self, locations: Sequence[LocationConfig]) -> None:
        if self.prepare_error is not None:
            raise self.prepare_error

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        with self._lock:
            self.attempted.append(location.location_id)
            self.threads.add(threading.current_thread().name)
        outcome = self.outcomes.get(location.location_id, 0)
        if isinstance(outcome, Exception):
            raise outcome
        return SyncCounts(items_processed=outcome)


class RaisingExecuteTask(ScriptedTask):
    """Task whose execute() itself raises."""

    def execute(self, location: LocationConfig) -> PhaseResult:
        raise RuntimeError("broken task")


class TestPhaseRunner:
    """Tests for PhaseRunner."""

    def test_rejects_zero_workers(self) -> None:
        """Should refuse a worker count below one."""
        with pytest.raises(ValueError):
            PhaseRunner(max_workers=0)

    def test_one_result_per_location_in_order(self) -> None:
        """Should keep input order and attempt every location."""
        task = ScriptedTask({"A": 42, "B": AuthError("expired", 401), "C": 10})

        summary = PhaseRunner().run(task, make_locations("A", "B", "C"))

        assert task.attempted == ["A", "B", "C"]
        assert [r.location_id for r in summary.results] == ["A", "B", "C"]
        assert [r.success for r in summary.results] == [True, False, True]
        assert summary.success_count == 2
        assert summary.error_count == 1
        assert summary.total_items == 52
        assert summary.result_for("B").error_kind == "AuthError"  # type: ignore[union-attr]

    def test_all_locations_failing(self) -> None:
        """Should still return a result for each location."""
        task = ScriptedTask({"A": ApiError("down", 500), "B": ApiError("down", 500)})

        summary = PhaseRunner().run(task, make_locations("A", "B"))

        assert summary.success_count == 0
        assert summary.error_count == 2

    def test_prepare_failure_fails_every_location(self) -> None:
        """Should fail all locations when phase setup fails."""
        task = ScriptedTask({}, prepare_error=AuthError("bad key", 200))

        summary = PhaseRunner().run(task, make_locations("A", "B"))

        assert task.attempted == []
        assert [r.error_kind for r in summary.results] == ["AuthError", "AuthError"]

    def test_raising_execute_is_contained(self) -> None:
        """Should turn an escaping exception into a failed result."""
        task = RaisingExecuteTask({})

        summary = PhaseRunner().run(task, make_locations("A", "B"))

        assert [r.error for r in summary.results] == ["broken task", "broken task"]

    def test_timestamps_from_clock(self) -> None:
        """Should stamp start and finish with the injected clock."""
        ticks = iter([100.0, 103.5])
        runner = PhaseRunner(clock=lambda: next(ticks))

        summary = runner.run(ScriptedTask({}), make_locations("A"))

        assert summary.started_at == 100.0
        assert summary.finished_at == 103.5
        assert summary.duration == 3.5

    def test_thread_pool_keeps_order(self) -> None:
        """Should run on worker threads and still report in input order."""
        names = [f"L{i}" for i in range(8)]
        task = ScriptedTask({name: i for i, name in enumerate(names)})

        summary = PhaseRunner(max_workers=4).run(task, make_locations(*names))

        assert [r.location_id for r in summary.results] == names
        assert sorted(task.attempted) == sorted(names)
        assert all(t.startswith("possync-inventory") for t in task.threads)
        assert summary.total_items == sum(range(8))


class TestMonotonicClock:
    """Tests for MonotonicClock."""

    def test_tracks_wall_clock(self) -> None:
        """Should start at the wall-clock time and advance with the monotonic clock."""
        with (
            patch("possync.sync.runner.time.time", return_value=1_700_000_000.0),
            patch("possync.sync.runner.time.monotonic", side_effect=[10.0, 10.0, 12.5]),
        ):
            clock = MonotonicClock()
            first = clock()
            second = clock()

        assert first == 1_700_000_000.0
        assert second == 1_700_000_002.5

    def test_strictly_increasing_when_stalled(self) -> None:
        """Should never repeat a reading while the monotonic clock stands still."""
        with patch("possync.sync.runner.time.monotonic", return_value=10.0):
            clock = MonotonicClock()
            readings = [clock() for _ in range(5)]

        assert all(b > a for a, b in zip(readings, readings[1:], strict=False))

    def test_default_runner_clock(self) -> None:
        """Should default the runner to a MonotonicClock."""
        assert isinstance(PhaseRunner().clock, MonotonicClock)
