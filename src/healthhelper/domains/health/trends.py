"""Trend analysis over the stored history window.

Summarizes how sleep, hydration and activity moved across the days kept in
storage: mean, range and a direction for each metric.
"""

from __future__ import annotations

import logging
import statistics
from collections.abc import Callable
from typing import Any

from healthhelper.core.storage.models import DailySnapshot
from healthhelper.core.storage.snapshots import HISTORY_WINDOW
from healthhelper.domains.health.insights import HealthInsightsService

logger = logging.getLogger(__name__)

# Relative change between half-window means that counts as a real move.
DIRECTION_THRESHOLD = 0.05

# metric name -> (extractor, higher_is_better)
_METRICS: dict[str, tuple[Callable[[DailySnapshot], float | None], bool]] = {
    "sleep_hours": (lambda s: s.sleep.hours if s.sleep else None, True),
    "sleep_quality": (lambda s: float(s.sleep.quality_score) if s.sleep else None, True),
    "hydration_ratio": (
        lambda s: (s.hydration.consumed_ml / s.hydration.target_ml)
        if s.hydration and s.hydration.target_ml > 0
        else None,
        True,
    ),
    "workout_minutes": (lambda s: float(s.activity.workout_minutes) if s.activity else None, True),
    "sedentary_minutes": (
        lambda s: float(s.activity.sedentary_minutes) if s.activity else None,
        False,
    ),
}


def _direction(values: list[float], higher_is_better: bool) -> str:
    """Compare the older half of ``values`` with the newer half.

    ``values`` must be ordered oldest first.
    """
    if len(values) < 2:
        return "insufficient_data"

    mid = len(values) // 2
    older = statistics.mean(values[:mid])
    newer = statistics.mean(values[mid:])
    baseline = abs(statistics.mean(values)) or 1.0
    change = (newer - older) / baseline

    if abs(change) <= DIRECTION_THRESHOLD:
        return "stable"
    improving = change > 0 if higher_is_better else change < 0
    return "improving" if improving else "declining"


def metric_trend(
    snapshots: list[DailySnapshot],
    extractor: Callable[[DailySnapshot], float | None],
    higher_is_better: bool = True,
) -> dict[str, Any]:
    """Statistics for one metric across ``snapshots`` (oldest first)."""
    values = [v for v in (extractor(s) for s in snapshots) if v is not None]
    if not values:
        return {"data_points": 0, "status": "no_data"}

    return {
        "current": round(values[-1], 2),
        "mean": round(statistics.mean(values), 2),
        "min": round(min(values), 2),
        "max": round(max(values), 2),
        "direction": _direction(values, higher_is_better),
        "data_points": len(values),
    }


class TrendAnalyzer:
    """Computes trends from the snapshots kept by the service.

    Usage::

        analyzer = TrendAnalyzer(service)
        summary = await analyzer.summarize()
    """

    def __init__(self, service: HealthInsightsService) -> None:
        self._service = service

    async def summarize(self, days: int = HISTORY_WINDOW) -> dict[str, Any]:
        """Summarize the most recent ``days`` snapshots.

        Returns:
            Dict with ``data_points``, ``date_range``, ``hydration_goal_days``
            and a ``metrics`` mapping, or ``status: no_data`` when empty.
        """
        snapshots = await self._service.get_history(days)
        if not snapshots:
            return {"data_points": 0, "status": "no_data"}

        snapshots = sorted(snapshots, key=lambda s: s.date)
        metrics = {
            name: metric_trend(snapshots, extractor, higher_is_better)
            for name, (extractor, higher_is_better) in _METRICS.items()
        }
        goal_days = sum(1 for s in snapshots if s.hydration and s.hydration.is_goal_met)

        logger.debug("Summarized trends over %d day(s)", len(snapshots))
        return {
            "data_points": len(snapshots),
            "date_range": {
                "start": snapshots[0].date.isoformat(),
                "end": snapshots[-1].date.isoformat(),
            },
            "hydration_goal_days": goal_days,
            "metrics": metrics,
        }
