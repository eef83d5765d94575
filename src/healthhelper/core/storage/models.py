"""Data models for the daily health log and the tip catalog."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta


@dataclass(frozen=True)
class SleepLog:
    """One night of sleep. Both timestamps carry a UTC offset."""

    bed_time: datetime
    wake_time: datetime
    quality_score: int  # 1-10 by convention, not enforced

    @property
    def duration(self) -> timedelta:
        return self.wake_time - self.bed_time

    @property
    def hours(self) -> float:
        return self.duration.total_seconds() / 3600


@dataclass(frozen=True)
class HydrationLog:
    """Water intake for a day, in millilitres."""

    target_ml: float
    consumed_ml: float

    @property
    def remaining_ml(self) -> float:
        return max(0.0, self.target_ml - self.consumed_ml)

    @property
    def is_goal_met(self) -> bool:
        return self.consumed_ml >= self.target_ml


@dataclass(frozen=True)
class ActivityLog:
    workout_minutes: int
    sedentary_minutes: int


@dataclass(frozen=True)
class AdviceBundle:
    """Narrative advice produced for a snapshot."""

    narrative: str


@dataclass(frozen=True)
class DailySnapshot:
    """One calendar day's health record.

    ``date`` is the unique key in storage. Every sub-record is optional so a
    caller can persist partial data (e.g. hydration only).
    """

    date: date
    sleep: SleepLog | None = None
    hydration: HydrationLog | None = None
    activity: ActivityLog | None = None
    advice: AdviceBundle | None = None

    def with_advice(self, advice: AdviceBundle | None) -> DailySnapshot:
        """Return a copy of this snapshot carrying ``advice``."""
        return replace(self, advice=advice)


@dataclass(frozen=True)
class HealthTip:
    """A catalog entry. Immutable once seeded."""

    id: int
    title: str
    content: str
    category: str  # 'sleep', 'hydration', 'exercise', 'nutrition', ...
    created_at: datetime


@dataclass(frozen=True)
class FavoriteTip:
    tip_id: int
    favorited_at: datetime
