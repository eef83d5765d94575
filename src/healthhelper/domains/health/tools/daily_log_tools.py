"""MCP tools for logging days, generating advice and browsing history."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from healthhelper.core.clock import SystemClock
from healthhelper.core.storage.models import (
    ActivityLog,
    DailySnapshot,
    HydrationLog,
    SleepLog,
)

if TYPE_CHECKING:
    from healthhelper.domains.health.insights import HealthInsightsService
    from healthhelper.domains.health.trends import TrendAnalyzer

logger = logging.getLogger(__name__)


def snapshot_to_dict(snapshot: DailySnapshot) -> dict[str, Any]:
    """JSON-friendly view of a snapshot, including derived values."""
    result: dict[str, Any] = {"date": snapshot.date.isoformat()}
    if snapshot.sleep is not None:
        result["sleep"] = {
            "bed_time": snapshot.sleep.bed_time.isoformat(),
            "wake_time": snapshot.sleep.wake_time.isoformat(),
            "quality_score": snapshot.sleep.quality_score,
            "hours": round(snapshot.sleep.hours, 2),
        }
    if snapshot.hydration is not None:
        result["hydration"] = {
            "target_ml": snapshot.hydration.target_ml,
            "consumed_ml": snapshot.hydration.consumed_ml,
            "remaining_ml": snapshot.hydration.remaining_ml,
            "goal_met": snapshot.hydration.is_goal_met,
        }
    if snapshot.activity is not None:
        result["activity"] = {
            "workout_minutes": snapshot.activity.workout_minutes,
            "sedentary_minutes": snapshot.activity.sedentary_minutes,
        }
    if snapshot.advice is not None:
        result["advice"] = snapshot.advice.narrative
    return result


def build_snapshot(
    log_date: date,
    *,
    bed_time: str = "",
    wake_time: str = "",
    sleep_quality: int | None = None,
    hydration_target_ml: float | None = None,
    hydration_consumed_ml: float | None = None,
    workout_minutes: int | None = None,
    sedentary_minutes: int | None = None,
) -> DailySnapshot:
    """Assemble a snapshot from flat tool arguments.

    Each sub-record must be given completely or not at all. Sleep timestamps
    must carry a UTC offset (``Z`` is accepted).
    """
    sleep_args = (bed_time, wake_time, sleep_quality)
    sleep = None
    if all(a not in ("", None) for a in sleep_args):
        bed, wake = datetime.fromisoformat(bed_time), datetime.fromisoformat(wake_time)
        if bed.tzinfo is None or wake.tzinfo is None:
            raise ValueError("bed_time and wake_time need a UTC offset")
        sleep = SleepLog(
            bed_time=bed,
            wake_time=wake,
            quality_score=int(sleep_quality),
        )
    elif any(a not in ("", None) for a in sleep_args):
        raise ValueError("Sleep needs bed_time, wake_time and sleep_quality together")

    hydration = None
    if hydration_target_ml is not None and hydration_consumed_ml is not None:
        hydration = HydrationLog(hydration_target_ml, hydration_consumed_ml)
    elif hydration_target_ml is not None or hydration_consumed_ml is not None:
        raise ValueError("Hydration needs hydration_target_ml and hydration_consumed_ml together")

    activity = None
    if workout_minutes is not None and sedentary_minutes is not None:
        activity = ActivityLog(workout_minutes, sedentary_minutes)
    elif workout_minutes is not None or sedentary_minutes is not None:
        raise ValueError("Activity needs workout_minutes and sedentary_minutes together")

    return DailySnapshot(date=log_date, sleep=sleep, hydration=hydration, activity=activity)


def register_daily_log_tools(
    mcp: FastMCP,
    service: HealthInsightsService,
    trend_analyzer: TrendAnalyzer,
    clock: SystemClock,
) -> None:
    """Register daily log, advice and history tools on the MCP server."""

    def _parse_date(log_date: str) -> date:
        return date.fromisoformat(log_date) if log_date else clock.today()

    @mcp.tool
    async def save_daily_snapshot(
        log_date: str = "",
        bed_time: str = "",
        wake_time: str = "",
        sleep_quality: int | None = None,
        hydration_target_ml: float | None = None,
        hydration_consumed_ml: float | None = None,
        workout_minutes: int | None = None,
        sedentary_minutes: int | None = None,
    ) -> str:
        """Record (or overwrite) one day's sleep, hydration and activity.

        Args:
            log_date: Calendar date (YYYY-MM-DD). Defaults to today.
            bed_time: ISO 8601 time you went to bed, with offset.
            wake_time: ISO 8601 time you woke up, with offset.
            sleep_quality: Sleep quality from 1 to 10.
            hydration_target_ml: Daily water target in ml.
            hydration_consumed_ml: Water consumed so far in ml.
            workout_minutes: Minutes of exercise.
            sedentary_minutes: Minutes spent sitting.
        """
        snapshot = build_snapshot(
            _parse_date(log_date),
            bed_time=bed_time,
            wake_time=wake_time,
            sleep_quality=sleep_quality,
            hydration_target_ml=hydration_target_ml,
            hydration_consumed_ml=hydration_consumed_ml,
            workout_minutes=workout_minutes,
            sedentary_minutes=sedentary_minutes,
        )
        await service.save_snapshot(snapshot)
        return json.dumps({
            "status": "saved",
            "snapshot": snapshot_to_dict(snapshot),
            "days_stored": await service.count_stored(),
        })

    @mcp.tool
    async def generate_daily_advice(
        log_date: str = "",
        bed_time: str = "",
        wake_time: str = "",
        sleep_quality: int | None = None,
        hydration_target_ml: float | None = None,
        hydration_consumed_ml: float | None = None,
        workout_minutes: int | None = None,
        sedentary_minutes: int | None = None,
    ) -> str:
        """Save today's data and get personalised advice based on the last 7 days.

        Takes the same arguments as ``save_daily_snapshot``. The advice is
        stored alongside the day once it has been generated.
        """
        snapshot = build_snapshot(
            _parse_date(log_date),
            bed_time=bed_time,
            wake_time=wake_time,
            sleep_quality=sleep_quality,
            hydration_target_ml=hydration_target_ml,
            hydration_consumed_ml=hydration_consumed_ml,
            workout_minutes=workout_minutes,
            sedentary_minutes=sedentary_minutes,
        )
        bundle = await service.generate_combined_advice(snapshot)
        await service.save_snapshot(snapshot.with_advice(bundle))
        logger.info("Advice stored for %s", snapshot.date.isoformat())
        return json.dumps({
            "status": "ok",
            "date": snapshot.date.isoformat(),
            "advice": bundle.narrative,
        })

    @mcp.tool
    async def get_history(days: int = 7) -> str:
        """List stored days, newest first.

        Args:
            days: Maximum number of days to return.
        """
        snapshots = await service.get_history(days)
        return json.dumps({"snapshots": [snapshot_to_dict(s) for s in snapshots]})

    @mcp.tool
    async def get_history_page(page_size: int = 3, skip: int = 0) -> str:
        """Page through stored days, newest first.

        Args:
            page_size: Days per page.
            skip: Number of days to skip.
        """
        snapshots = await service.get_history_page(page_size, skip)
        return json.dumps({
            "page_size": page_size,
            "skip": max(0, skip),
            "snapshots": [snapshot_to_dict(s) for s in snapshots],
        })

    @mcp.tool
    async def get_health_trends(days: int = 7) -> str:
        """Summarize sleep, hydration and activity trends over recent days.

        Args:
            days: Number of most recent days to analyze.
        """
        return json.dumps(await trend_analyzer.summarize(days))
