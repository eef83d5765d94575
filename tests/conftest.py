"""Shared test fixtures for HealthHelper tests."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("NARRATIVE_SOURCE", "llm")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "env" / "healthhelper.db"))

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from healthhelper.core.storage.models import DailySnapshot  # noqa: E402
from healthhelper.core.storage.tips import TipSeed  # noqa: E402

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock frozen at ``FIXED_NOW`` unless advanced explicitly."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def is_weekend(self) -> bool:
        return self.current.weekday() >= 5

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class StubNarrativeClient:
    """Records calls and returns canned narrative text, or raises ``error``."""

    def __init__(self, narrative: str = "Test AI narrative", error: Exception | None = None):
        self.narrative = narrative
        self.error = error
        self.calls: list[tuple[DailySnapshot, list[DailySnapshot]]] = []

    async def create_narrative(
        self, today: DailySnapshot, history: Sequence[DailySnapshot]
    ) -> str:
        self.calls.append((today, list(history)))
        if self.error is not None:
            raise self.error
        return self.narrative


TEST_CATALOG = [
    TipSeed(1, "Keep a regular schedule", "Same bedtime every day.", "sleep"),
    TipSeed(2, "Stay hydrated", "Drink at least 2000ml of water.", "hydration"),
    TipSeed(3, "Move for your heart", "150 minutes of cardio a week.", "exercise"),
    TipSeed(4, "Eat a good breakfast", "Protein, whole grains and fruit.", "nutrition"),
]


# ---------------------------------------------------------------------------
# Storage / service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "data" / "healthhelper.db")


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def narrative_client() -> StubNarrativeClient:
    return StubNarrativeClient()


@pytest.fixture
def health_db(db_path):
    """Create an initialized HealthDatabase in a temp directory."""
    from healthhelper.core.storage.database import HealthDatabase

    db = HealthDatabase(db_path)
    db.initialize()
    return db


@pytest.fixture
def service(db_path, narrative_client, fixed_clock):
    """Create a HealthInsightsService backed by a temp SQLite file."""
    import random

    from healthhelper.domains.health.insights import HealthInsightsService

    return HealthInsightsService(
        db_path,
        narrative_client,
        clock=fixed_clock,
        catalog=TEST_CATALOG,
        rng=random.Random(42),
    )
