"""Health insights service: the single entry point to the daily log.

Owns the database, the snapshot and tip stores, and the gate that
serializes every operation against them. The advice workflow (persist,
read back the window, call the narrative collaborator) runs entirely under
the gate so other callers see it as one step.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Sequence

from healthhelper.core.clock import SystemClock, UtcClock
from healthhelper.core.storage.database import HealthDatabase
from healthhelper.core.storage.models import AdviceBundle, DailySnapshot, HealthTip
from healthhelper.core.storage.snapshots import HISTORY_WINDOW, SnapshotStore
from healthhelper.core.storage.tips import TipSeed, TipStore
from healthhelper.domains.health.narrative import NarrativeClient
from healthhelper.domains.health.tip_catalog import load_tip_catalog

logger = logging.getLogger(__name__)


class HealthInsightsService:
    """Snapshot persistence, history retrieval, tips and advice generation.

    The schema is migrated in the constructor, before the gate is used.
    Cancelling a running operation aborts it and releases the gate.

    Usage::

        service = HealthInsightsService("~/.healthhelper/healthhelper.db", narrative_client)
        bundle = await service.generate_combined_advice(snapshot)
        await service.save_snapshot(snapshot.with_advice(bundle))
    """

    def __init__(
        self,
        db_path: str,
        narrative_client: NarrativeClient,
        *,
        clock: SystemClock | None = None,
        catalog: Sequence[TipSeed] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Open the database and bring its schema up to date.

        Raises:
            ConfigurationError: If ``db_path`` is blank.
            MigrationError: If the schema cannot be migrated.
        """
        self._db = HealthDatabase(db_path)
        self._db.initialize()

        self._narrative = narrative_client
        self._clock = clock or UtcClock()
        self._snapshots = SnapshotStore(self._db)
        self._tips = TipStore(
            self._db,
            self._clock,
            load_tip_catalog() if catalog is None else catalog,
            rng,
        )
        self._gate = asyncio.Lock()
        self._tips_seeded = False

    @property
    def database(self) -> HealthDatabase:
        return self._db

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def save_snapshot(self, snapshot: DailySnapshot) -> None:
        """Upsert ``snapshot`` by date and prune history outside the window."""
        if snapshot is None:
            raise ValueError("snapshot is required")
        async with self._gate:
            await self._snapshots.save(snapshot)

    async def count_stored(self) -> int:
        """Return the number of stored days."""
        async with self._gate:
            return await self._snapshots.count()

    async def generate_combined_advice(self, snapshot: DailySnapshot) -> AdviceBundle:
        """Persist ``snapshot``, then ask the narrative collaborator for advice.

        The returned bundle is not stored; save it with
        ``save_snapshot(snapshot.with_advice(bundle))``. A collaborator
        failure propagates unchanged and leaves the snapshot persisted.
        """
        if snapshot is None:
            raise ValueError("snapshot is required")

        async with self._gate:
            await self._snapshots.save(snapshot)
            window = await self._snapshots.load_recent(HISTORY_WINDOW, ascending=True)
            logger.info(
                "Generating advice for %s with %d day(s) of history",
                snapshot.date.isoformat(),
                len(window),
            )
            try:
                narrative = await self._narrative.create_narrative(snapshot, window)
            except Exception as exc:
                logger.warning(
                    "Advice generation for %s failed: %s", snapshot.date.isoformat(), exc
                )
                raise

        return AdviceBundle(narrative)

    async def get_history(self, limit: int = HISTORY_WINDOW) -> list[DailySnapshot]:
        """Return up to ``limit`` snapshots, newest first."""
        async with self._gate:
            return await self._snapshots.load_recent(limit)

    async def get_history_page(self, page_size: int, skip: int) -> list[DailySnapshot]:
        """Return one page of snapshots, newest first.

        ``page_size <= 0`` yields an empty page; negative ``skip`` counts as 0.
        """
        async with self._gate:
            return await self._snapshots.load_page(page_size, skip)

    async def get_advice_window(self) -> list[DailySnapshot]:
        """Return the window used as advice context, oldest first."""
        async with self._gate:
            return await self._snapshots.load_recent(HISTORY_WINDOW, ascending=True)

    # ------------------------------------------------------------------
    # Tips
    # ------------------------------------------------------------------

    async def _ensure_tips_seeded(self) -> None:
        if not self._tips_seeded:
            await self._tips.seed_if_empty()
            self._tips_seeded = True

    async def seed_tips(self) -> None:
        """Seed the tip catalog if the table is empty."""
        async with self._gate:
            await self._ensure_tips_seeded()

    async def get_all_tips(self) -> list[HealthTip]:
        async with self._gate:
            await self._ensure_tips_seeded()
            return await self._tips.get_all()

    async def get_tips_with_favorites(self) -> list[tuple[HealthTip, bool]]:
        """Return every tip with its favorite state, read under one lock."""
        async with self._gate:
            await self._ensure_tips_seeded()
            return await self._tips.get_all_with_favorites()

    async def is_tip_favorited(self, tip_id: int) -> bool:
        async with self._gate:
            await self._ensure_tips_seeded()
            return await self._tips.is_favorited(tip_id)

    async def toggle_favorite(self, tip_id: int) -> bool:
        """Flip the favorite state of ``tip_id`` and return the new state."""
        async with self._gate:
            await self._ensure_tips_seeded()
            return await self._tips.toggle_favorite(tip_id)

    async def get_favorited_tips(self) -> list[HealthTip]:
        """Return favorited tips, most recently favorited first."""
        async with self._gate:
            await self._ensure_tips_seeded()
            return await self._tips.get_favorited()

    async def get_random_tip(self) -> HealthTip:
        """Random favorite if any, else a random tip, else the fallback tip."""
        async with self._gate:
            await self._ensure_tips_seeded()
            return await self._tips.get_random()
