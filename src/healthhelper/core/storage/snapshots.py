"""Daily snapshot store: upsert by date with rolling-window retention."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta
from typing import Any

from healthhelper.core.storage.database import HealthDatabase
from healthhelper.core.storage.models import (
    ActivityLog,
    AdviceBundle,
    DailySnapshot,
    HydrationLog,
    SleepLog,
)

logger = logging.getLogger(__name__)

# Number of most recent days kept in storage and fed into advice generation.
HISTORY_WINDOW = 7

# A sub-record is present only when every one of its columns is non-null.
SLEEP_COLUMNS = ("bed_time", "wake_time", "sleep_quality")
HYDRATION_COLUMNS = ("hydration_target", "hydration_consumed")
ACTIVITY_COLUMNS = ("workout_minutes", "sedentary_minutes")

_SELECT_COLUMNS = """
    log_date, bed_time, wake_time, sleep_quality,
    hydration_target, hydration_consumed,
    workout_minutes, sedentary_minutes, advice_narrative
"""


def _all_present(row: Mapping[str, Any], columns: Sequence[str]) -> bool:
    return all(row[column] is not None for column in columns)


def row_to_snapshot(row: Mapping[str, Any]) -> DailySnapshot:
    """Rebuild a snapshot from a ``daily_logs`` row.

    Partially persisted sub-records (e.g. bed time without wake time) are
    treated as absent.
    """
    sleep = None
    if _all_present(row, SLEEP_COLUMNS):
        sleep = SleepLog(
            bed_time=datetime.fromisoformat(row["bed_time"]),
            wake_time=datetime.fromisoformat(row["wake_time"]),
            quality_score=int(row["sleep_quality"]),
        )

    hydration = None
    if _all_present(row, HYDRATION_COLUMNS):
        hydration = HydrationLog(
            target_ml=float(row["hydration_target"]),
            consumed_ml=float(row["hydration_consumed"]),
        )

    activity = None
    if _all_present(row, ACTIVITY_COLUMNS):
        activity = ActivityLog(
            workout_minutes=int(row["workout_minutes"]),
            sedentary_minutes=int(row["sedentary_minutes"]),
        )

    advice = None
    if row["advice_narrative"] is not None:
        advice = AdviceBundle(row["advice_narrative"])

    return DailySnapshot(
        date=date.fromisoformat(row["log_date"]),
        sleep=sleep,
        hydration=hydration,
        activity=activity,
        advice=advice,
    )


def retention_cutoff(pivot: date) -> date:
    """Oldest date kept after saving a snapshot dated ``pivot``."""
    return pivot - timedelta(days=HISTORY_WINDOW - 1)


class SnapshotStore:
    """Durable upsert and retrieval of :class:`DailySnapshot` rows.

    This class does no locking of its own; callers serialize access.

    Usage::

        store = SnapshotStore(database)
        await store.save(snapshot)
        recent = await store.load_recent(HISTORY_WINDOW, ascending=True)
    """

    def __init__(self, database: HealthDatabase) -> None:
        self._db = database

    async def save(self, snapshot: DailySnapshot) -> int:
        """Insert or fully overwrite the row for ``snapshot.date``, then prune.

        Rows older than ``snapshot.date - (HISTORY_WINDOW - 1)`` days are
        deleted in the same transaction. The anchor is the saved date, not
        today, so a backdated save can prune newer rows.

        Returns:
            Number of rows pruned.
        """
        if snapshot is None:
            raise ValueError("snapshot is required")

        sleep = snapshot.sleep
        hydration = snapshot.hydration
        activity = snapshot.activity
        params = (
            snapshot.date.isoformat(),
            sleep.bed_time.isoformat() if sleep else None,
            sleep.wake_time.isoformat() if sleep else None,
            sleep.quality_score if sleep else None,
            hydration.target_ml if hydration else None,
            hydration.consumed_ml if hydration else None,
            activity.workout_minutes if activity else None,
            activity.sedentary_minutes if activity else None,
            snapshot.advice.narrative if snapshot.advice else None,
        )

        async with self._db.connect() as conn:
            await conn.execute(
                """INSERT INTO daily_logs (
                    log_date, bed_time, wake_time, sleep_quality,
                    hydration_target, hydration_consumed,
                    workout_minutes, sedentary_minutes, advice_narrative
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(log_date) DO UPDATE SET
                    bed_time = excluded.bed_time,
                    wake_time = excluded.wake_time,
                    sleep_quality = excluded.sleep_quality,
                    hydration_target = excluded.hydration_target,
                    hydration_consumed = excluded.hydration_consumed,
                    workout_minutes = excluded.workout_minutes,
                    sedentary_minutes = excluded.sedentary_minutes,
                    advice_narrative = excluded.advice_narrative""",
                params,
            )
            cutoff = retention_cutoff(snapshot.date).isoformat()
            cursor = await conn.execute("DELETE FROM daily_logs WHERE log_date < ?", (cutoff,))
            pruned = cursor.rowcount
            await conn.commit()

        logger.info("Saved snapshot for %s", snapshot.date.isoformat())
        if pruned:
            logger.info("Pruned %d snapshot(s) older than %s", pruned, cutoff)
        return pruned

    async def count(self) -> int:
        """Return the total number of stored days."""
        async with self._db.connect() as conn:
            cursor = await conn.execute("SELECT COUNT(1) FROM daily_logs")
            row = await cursor.fetchone()
        return row[0]

    async def load_recent(self, limit: int, *, ascending: bool = False) -> list[DailySnapshot]:
        """Load the ``limit`` most recent snapshots.

        Args:
            limit: Maximum number of days. ``limit <= 0`` returns nothing.
            ascending: Return oldest-first (advice context) instead of the
                default newest-first (browsing).
        """
        if limit <= 0:
            return []

        async with self._db.connect() as conn:
            cursor = await conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM daily_logs ORDER BY log_date DESC LIMIT ?",
                (limit,),
            )
            rows = await cursor.fetchall()

        snapshots = [row_to_snapshot(row) for row in rows]
        if ascending:
            snapshots.reverse()
        return snapshots

    async def load_page(self, page_size: int, skip: int) -> list[DailySnapshot]:
        """Load one page of snapshots, newest first.

        ``page_size <= 0`` returns nothing; a negative ``skip`` is clamped
        to zero.
        """
        if page_size <= 0:
            return []
        skip = max(0, skip)

        async with self._db.connect() as conn:
            cursor = await conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM daily_logs "
                "ORDER BY log_date DESC LIMIT ? OFFSET ?",
                (page_size, skip),
            )
            rows = await cursor.fetchall()

        return [row_to_snapshot(row) for row in rows]
