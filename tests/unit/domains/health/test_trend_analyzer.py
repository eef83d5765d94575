"""Tests for the TrendAnalyzer: statistics over the stored window."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

from healthhelper.core.storage.models import (
    ActivityLog,
    DailySnapshot,
    HydrationLog,
    SleepLog,
)
from healthhelper.domains.health.trends import TrendAnalyzer, metric_trend


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _snapshot(day: int, hours: float = 8, consumed: float = 2000, workout: int = 30,
              sedentary: int = 300) -> DailySnapshot:
    d = date(2024, 3, day)
    bed = datetime(2024, 3, day, tzinfo=timezone.utc)
    return DailySnapshot(
        date=d,
        sleep=SleepLog(bed, bed + timedelta(hours=hours), 7),
        hydration=HydrationLog(2000, consumed),
        activity=ActivityLog(workout, sedentary),
    )


def _save_all(service, snapshots):
    async def _go():
        for snap in snapshots:
            await service.save_snapshot(snap)
    _run(_go())


class TestSummarize:
    def test_no_data(self, service):
        result = _run(TrendAnalyzer(service).summarize())
        assert result == {"data_points": 0, "status": "no_data"}

    def test_single_day(self, service):
        _save_all(service, [_snapshot(1)])
        result = _run(TrendAnalyzer(service).summarize())
        assert result["data_points"] == 1
        assert result["metrics"]["sleep_hours"]["current"] == 8
        assert result["metrics"]["sleep_hours"]["direction"] == "insufficient_data"

    def test_improving_sleep_detected(self, service):
        _save_all(service, [_snapshot(d, hours=h) for d, h in zip(range(1, 5), (5, 5.5, 7, 8))])
        result = _run(TrendAnalyzer(service).summarize())
        sleep = result["metrics"]["sleep_hours"]
        assert sleep["direction"] == "improving"
        assert sleep["min"] == 5
        assert sleep["max"] == 8
        assert result["date_range"] == {"start": "2024-03-01", "end": "2024-03-04"}

    def test_rising_sedentary_time_is_declining(self, service):
        _save_all(service, [_snapshot(d, sedentary=s) for d, s in zip(range(1, 5), (200, 220, 400, 450))])
        result = _run(TrendAnalyzer(service).summarize())
        assert result["metrics"]["sedentary_minutes"]["direction"] == "declining"

    def test_stable_metrics(self, service):
        _save_all(service, [_snapshot(d) for d in range(1, 5)])
        result = _run(TrendAnalyzer(service).summarize())
        assert result["metrics"]["workout_minutes"]["direction"] == "stable"
        assert result["metrics"]["hydration_ratio"]["mean"] == 1.0

    def test_hydration_goal_days(self, service):
        _save_all(service, [_snapshot(1, consumed=2100), _snapshot(2, consumed=900), _snapshot(3)])
        result = _run(TrendAnalyzer(service).summarize())
        assert result["hydration_goal_days"] == 2

    def test_days_limits_window(self, service):
        _save_all(service, [_snapshot(d) for d in range(1, 6)])
        result = _run(TrendAnalyzer(service).summarize(days=2))
        assert result["data_points"] == 2
        assert result["date_range"]["start"] == "2024-03-04"


class TestMetricTrend:
    def test_missing_metric_reports_no_data(self):
        snaps = [DailySnapshot(date=date(2024, 3, 1))]
        assert metric_trend(snaps, lambda s: s.sleep.hours if s.sleep else None) == {
            "data_points": 0,
            "status": "no_data",
        }
