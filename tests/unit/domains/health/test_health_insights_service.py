"""Tests for HealthInsightsService: gate, advice workflow, history and tips."""

from __future__ import annotations

import asyncio
import random
import sqlite3
from contextlib import closing
from datetime import date, datetime, timedelta, timezone

import pytest

from healthhelper.core.config.settings import ConfigurationError
from healthhelper.core.storage.models import (
    ActivityLog,
    AdviceBundle,
    DailySnapshot,
    HydrationLog,
    SleepLog,
)
from healthhelper.core.storage.tips import FALLBACK_TIP
from healthhelper.domains.health.insights import HealthInsightsService
from healthhelper.domains.health.narrative import NarrativeError


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _snapshot(day: date, water_ml: float = 2000) -> DailySnapshot:
    bed = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return DailySnapshot(
        date=day,
        sleep=SleepLog(bed, bed + timedelta(hours=8), 8),
        hydration=HydrationLog(2000, water_ml),
        activity=ActivityLog(60, 120),
    )


class TestConstruction:
    def test_blank_path_is_configuration_error(self, narrative_client):
        with pytest.raises(ConfigurationError):
            HealthInsightsService("  ", narrative_client)

    def test_legacy_weight_schema_migrated_on_construction(self, db_path, tmp_path, narrative_client):
        (tmp_path / "data").mkdir()
        with closing(sqlite3.connect(db_path)) as conn:
            conn.execute(
                """CREATE TABLE daily_logs (
                    log_date TEXT PRIMARY KEY, bed_time TEXT, wake_time TEXT,
                    sleep_quality INTEGER, hydration_target REAL, hydration_consumed REAL,
                    workout_minutes INTEGER, sedentary_minutes INTEGER, body_weight REAL)"""
            )
            conn.execute(
                """INSERT INTO daily_logs VALUES ('2024-01-01', '2024-01-01T00:00:00+00:00',
                   '2024-01-01T08:00:00+00:00', 8, 2000, 1800, 45, 200, 70.1)"""
            )
            conn.commit()

        service = HealthInsightsService(db_path, narrative_client, catalog=[])

        assert "body_weight" not in service.database.column_names("daily_logs")
        (loaded,) = _run(service.get_history())
        assert loaded == DailySnapshot(
            date=date(2024, 1, 1),
            sleep=SleepLog(
                datetime(2024, 1, 1, tzinfo=timezone.utc),
                datetime(2024, 1, 1, 8, tzinfo=timezone.utc),
                8,
            ),
            hydration=HydrationLog(2000, 1800),
            activity=ActivityLog(45, 200),
        )


class TestSaveSnapshot:
    def test_none_snapshot_rejected(self, service):
        with pytest.raises(ValueError):
            _run(service.save_snapshot(None))

    def test_same_date_twice_keeps_one_row(self, service):
        day = date(2024, 1, 1)

        async def _go():
            await service.save_snapshot(_snapshot(day))
            await service.save_snapshot(_snapshot(day, water_ml=2200))
            return await service.count_stored(), await service.get_history()

        count, history = _run(_go())
        assert count == 1
        assert history[0].hydration.consumed_ml == 2200

    def test_count_matches_distinct_dates(self, service):
        async def _go():
            await service.save_snapshot(_snapshot(date(2024, 1, 1)))
            await service.save_snapshot(_snapshot(date(2024, 1, 2)))
            return await service.count_stored()

        assert _run(_go()) == 2

    def test_empty_store_counts_zero(self, service):
        assert _run(service.count_stored()) == 0

    def test_ten_days_scenario(self, service):
        async def _go():
            for i in range(10):
                await service.save_snapshot(_snapshot(date(2024, 1, 1) + timedelta(days=i)))
            return await service.count_stored(), await service.get_advice_window()

        count, window = _run(_go())
        assert count == 7
        assert [s.date for s in window] == [date(2024, 1, 4) + timedelta(days=i) for i in range(7)]


class TestHistory:
    def test_history_newest_first(self, service):
        async def _go():
            for day in (1, 3, 2):
                await service.save_snapshot(_snapshot(date(2024, 1, day)))
            return await service.get_history(7)

        assert [s.date.day for s in _run(_go())] == [3, 2, 1]

    def test_history_limit(self, service):
        async def _go():
            for day in range(1, 8):
                await service.save_snapshot(_snapshot(date(2024, 1, day)))
            return await service.get_history(5)

        assert len(_run(_go())) == 5

    def test_empty_history(self, service):
        assert _run(service.get_history()) == []

    def test_advice_window_oldest_first(self, service):
        async def _go():
            for day in (2, 1, 3):
                await service.save_snapshot(_snapshot(date(2024, 1, day)))
            return await service.get_advice_window()

        assert [s.date.day for s in _run(_go())] == [1, 2, 3]

    def test_paging(self, service):
        async def _go():
            for day in range(1, 8):
                await service.save_snapshot(_snapshot(date(2024, 1, day), 2000 + day * 10))
            return (
                await service.get_history_page(3, 0),
                await service.get_history_page(3, 3),
                await service.get_history_page(0, 0),
                await service.get_history_page(10, -1),
            )

        page1, page2, empty, clamped = _run(_go())
        assert [s.date.day for s in page1] == [7, 6, 5]
        assert page1[0].hydration.consumed_ml == 2070
        assert [s.date.day for s in page2] == [4, 3, 2]
        assert empty == []
        assert len(clamped) == 7


class TestGenerateCombinedAdvice:
    def test_returns_bundle(self, service):
        bundle = _run(service.generate_combined_advice(_snapshot(date(2024, 1, 1))))
        assert bundle == AdviceBundle("Test AI narrative")

    def test_none_snapshot_rejected(self, service, narrative_client):
        with pytest.raises(ValueError):
            _run(service.generate_combined_advice(None))
        assert narrative_client.calls == []

    def test_collaborator_gets_snapshot_and_ascending_window(self, service, narrative_client):
        today = _snapshot(date(2024, 1, 5))

        async def _go():
            await service.save_snapshot(_snapshot(date(2024, 1, 3)))
            await service.save_snapshot(_snapshot(date(2024, 1, 4)))
            await service.generate_combined_advice(today)

        _run(_go())
        ((called_today, history),) = narrative_client.calls
        assert called_today is today
        assert [s.date.day for s in history] == [3, 4, 5]

    def test_snapshot_persisted_before_narrative(self, service):
        _run(service.generate_combined_advice(_snapshot(date(2024, 1, 1))))
        assert _run(service.count_stored()) == 1

    def test_bundle_not_persisted_automatically(self, service):
        async def _go():
            await service.generate_combined_advice(_snapshot(date(2024, 1, 1)))
            return await service.get_history()

        assert _run(_go())[0].advice is None

    def test_caller_persists_bundle(self, service):
        snap = _snapshot(date(2024, 1, 1))

        async def _go():
            bundle = await service.generate_combined_advice(snap)
            await service.save_snapshot(snap.with_advice(bundle))
            return await service.get_history()

        assert _run(_go())[0].advice == AdviceBundle("Test AI narrative")

    def test_collaborator_failure_propagates_and_snapshot_kept(self, service, narrative_client):
        narrative_client.error = NarrativeError("service unavailable")

        with pytest.raises(NarrativeError, match="unavailable"):
            _run(service.generate_combined_advice(_snapshot(date(2024, 1, 1))))

        assert _run(service.count_stored()) == 1

    def test_collaborator_timeout_propagates_unmodified(self, service, narrative_client):
        error = TimeoutError("narrative timed out")
        narrative_client.error = error

        with pytest.raises(TimeoutError) as exc_info:
            _run(service.generate_combined_advice(_snapshot(date(2024, 1, 1))))
        assert exc_info.value is error


class _BlockingNarrative:
    """Narrative client that waits until released, to hold the gate."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def create_narrative(self, today, history):
        self.started.set()
        await self.release.wait()
        return "done"


class TestGate:
    def test_reads_wait_for_advice_workflow(self, db_path, fixed_clock):
        async def _go():
            narrative = _BlockingNarrative()
            service = HealthInsightsService(db_path, narrative, clock=fixed_clock, catalog=[])
            order: list[str] = []

            async def advice():
                await service.generate_combined_advice(_snapshot(date(2024, 1, 1)))
                order.append("advice")

            async def count():
                await service.count_stored()
                order.append("count")

            advice_task = asyncio.create_task(advice())
            await narrative.started.wait()
            count_task = asyncio.create_task(count())
            await asyncio.sleep(0.05)
            assert order == []
            narrative.release.set()
            await asyncio.gather(advice_task, count_task)
            return order

        assert _run(_go()) == ["advice", "count"]

    def test_cancellation_releases_gate(self, db_path, fixed_clock):
        async def _go():
            narrative = _BlockingNarrative()
            service = HealthInsightsService(db_path, narrative, clock=fixed_clock, catalog=[])

            task = asyncio.create_task(
                service.generate_combined_advice(_snapshot(date(2024, 1, 1)))
            )
            await narrative.started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            # Gate is free again and step 1 stayed committed.
            return await asyncio.wait_for(service.count_stored(), timeout=5)

        assert _run(_go()) == 1

    def test_failure_releases_gate(self, service, narrative_client):
        narrative_client.error = RuntimeError("boom")

        async def _go():
            with pytest.raises(RuntimeError):
                await service.generate_combined_advice(_snapshot(date(2024, 1, 1)))
            return await asyncio.wait_for(service.count_stored(), timeout=5)

        assert _run(_go()) == 1

    def test_concurrent_saves_are_serialized(self, service):
        async def _go():
            await asyncio.gather(
                *(service.save_snapshot(_snapshot(date(2024, 1, 1), 1000 + i)) for i in range(10))
            )
            return await service.count_stored(), await service.get_history()

        count, history = _run(_go())
        assert count == 1
        # Acquisition order is preserved, so the last submitted save wins.
        assert history[0].hydration.consumed_ml == 1009


class TestTips:
    def test_all_tips_seeded_lazily(self, service):
        tips = _run(service.get_all_tips())
        assert [t.id for t in tips] == [1, 2, 3, 4]
        assert all(t.content for t in tips)

    def test_not_favorited_initially(self, service):
        assert _run(service.is_tip_favorited(1)) is False

    def test_toggle_favorite(self, service):
        async def _go():
            states = [await service.is_tip_favorited(1)]
            await service.toggle_favorite(1)
            states.append(await service.is_tip_favorited(1))
            await service.toggle_favorite(1)
            states.append(await service.is_tip_favorited(1))
            return states

        assert _run(_go()) == [False, True, False]

    def test_no_favorites(self, service):
        assert _run(service.get_favorited_tips()) == []

    def test_favorited_tips(self, service):
        async def _go():
            await service.toggle_favorite(1)
            await service.toggle_favorite(2)
            return await service.get_favorited_tips()

        assert {t.id for t in _run(_go())} == {1, 2}

    def test_tips_with_favorites(self, service):
        async def _go():
            await service.toggle_favorite(2)
            return await service.get_tips_with_favorites()

        assert [(t.id, fav) for t, fav in _run(_go())] == [
            (1, False),
            (2, True),
            (3, False),
            (4, False),
        ]

    def test_tips_with_favorites_waits_for_toggle(self, service):
        async def _go():
            await service.seed_tips()
            toggle = asyncio.create_task(service.toggle_favorite(1))
            listed = asyncio.create_task(service.get_tips_with_favorites())
            await toggle
            return await listed

        assert _run(_go())[0][1] is True

    def test_random_tip_is_valid(self, service):
        tip = _run(service.get_random_tip())
        assert tip.id > 0
        assert tip.content

    def test_random_tip_fallback_on_empty_catalog(self, db_path, narrative_client):
        service = HealthInsightsService(db_path, narrative_client, catalog=[], rng=random.Random(1))
        assert _run(service.get_random_tip()) == FALLBACK_TIP

    def test_default_catalog_loaded_from_resources(self, db_path, narrative_client):
        service = HealthInsightsService(db_path, narrative_client)
        tips = _run(service.get_all_tips())
        assert len(tips) >= 4
        assert {t.category for t in tips} >= {"sleep", "hydration", "exercise", "nutrition"}
