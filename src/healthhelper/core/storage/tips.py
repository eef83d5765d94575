"""Health tip catalog and favorites."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from healthhelper.core.clock import SystemClock
from healthhelper.core.storage.database import HealthDatabase
from healthhelper.core.storage.models import HealthTip

logger = logging.getLogger(__name__)

# Returned by get_random() when the catalog is empty.
FALLBACK_TIP = HealthTip(
    id=0,
    title="Small steps count",
    content=(
        "Drink a glass of water, stand up and stretch for a minute, "
        "and aim for a regular bedtime tonight."
    ),
    category="general",
    created_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
)


@dataclass(frozen=True)
class TipSeed:
    """A hand-authored catalog entry, inserted once on first use."""

    id: int
    title: str
    content: str
    category: str


def _row_to_tip(row: Any) -> HealthTip:
    return HealthTip(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        category=row["category"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class TipStore:
    """Tip catalog seeding, favorite toggling and random selection.

    Like :class:`SnapshotStore`, this class does no locking of its own.
    """

    def __init__(
        self,
        database: HealthDatabase,
        clock: SystemClock,
        catalog: Sequence[TipSeed] = (),
        rng: random.Random | None = None,
    ) -> None:
        self._db = database
        self._clock = clock
        self._catalog = tuple(catalog)
        self._rng = rng or random.Random()

    async def seed_if_empty(self) -> int:
        """Insert the catalog if ``health_tips`` has no rows.

        Existing rows are never resynchronized against the catalog.

        Returns:
            Number of tips inserted.
        """
        async with self._db.connect() as conn:
            cursor = await conn.execute("SELECT COUNT(1) FROM health_tips")
            (existing,) = await cursor.fetchone()
            if existing > 0 or not self._catalog:
                return 0

            created_at = self._clock.now().isoformat()
            await conn.executemany(
                """INSERT INTO health_tips (id, title, content, category, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                [(t.id, t.title, t.content, t.category, created_at) for t in self._catalog],
            )
            await conn.commit()

        logger.info("Seeded %d health tips", len(self._catalog))
        return len(self._catalog)

    async def get_all(self) -> list[HealthTip]:
        """Return every tip ordered by id."""
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                "SELECT id, title, content, category, created_at FROM health_tips ORDER BY id"
            )
            rows = await cursor.fetchall()
        return [_row_to_tip(row) for row in rows]

    async def get_all_with_favorites(self) -> list[tuple[HealthTip, bool]]:
        """Return every tip ordered by id, paired with its favorite state."""
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                """SELECT t.id, t.title, t.content, t.category, t.created_at,
                          f.tip_id IS NOT NULL AS favorited
                   FROM health_tips t
                   LEFT JOIN tip_favorites f ON f.tip_id = t.id
                   ORDER BY t.id"""
            )
            rows = await cursor.fetchall()
        return [(_row_to_tip(row), bool(row["favorited"])) for row in rows]

    async def is_favorited(self, tip_id: int) -> bool:
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                "SELECT 1 FROM tip_favorites WHERE tip_id = ?", (tip_id,)
            )
            row = await cursor.fetchone()
        return row is not None

    async def toggle_favorite(self, tip_id: int) -> bool:
        """Remove the favorite if present, otherwise add it.

        Returns:
            The new favorite state.

        Raises:
            sqlite3.IntegrityError: If ``tip_id`` is not in the catalog.
        """
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                "DELETE FROM tip_favorites WHERE tip_id = ?", (tip_id,)
            )
            if cursor.rowcount > 0:
                favorited = False
            else:
                await conn.execute(
                    "INSERT INTO tip_favorites (tip_id, favorited_at) VALUES (?, ?)",
                    (tip_id, self._clock.now().isoformat()),
                )
                favorited = True
            await conn.commit()

        logger.info("Tip %d %s favorites", tip_id, "added to" if favorited else "removed from")
        return favorited

    async def get_favorited(self) -> list[HealthTip]:
        """Return favorited tips, most recently favorited first."""
        async with self._db.connect() as conn:
            cursor = await conn.execute(
                """SELECT t.id, t.title, t.content, t.category, t.created_at
                   FROM health_tips t
                   JOIN tip_favorites f ON f.tip_id = t.id
                   ORDER BY f.favorited_at DESC, t.id"""
            )
            rows = await cursor.fetchall()
        return [_row_to_tip(row) for row in rows]

    async def get_random(self) -> HealthTip:
        """Pick a favorited tip if any exist, else any tip, else the fallback."""
        favorites = await self.get_favorited()
        if favorites:
            return self._rng.choice(favorites)

        tips = await self.get_all()
        if tips:
            return self._rng.choice(tips)

        logger.debug("Tip catalog is empty; returning fallback tip")
        return FALLBACK_TIP
