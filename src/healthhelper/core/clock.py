"""Clock abstraction used to timestamp tip seeding and favorites."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class SystemClock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...

    def is_weekend(self) -> bool: ...


class UtcClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()

    def is_weekend(self) -> bool:
        return self.today().weekday() >= 5
