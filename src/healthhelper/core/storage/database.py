"""SQLite database management for the HealthHelper daily log.

Handles the database location, ordered schema migrations (run once at
startup), and per-operation async connections.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager, closing
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from healthhelper.core.config.settings import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

# Column order of the current daily_logs shape. Also drives the legacy copy.
DAILY_LOG_COLUMNS = (
    "log_date",
    "bed_time",
    "wake_time",
    "sleep_quality",
    "hydration_target",
    "hydration_consumed",
    "workout_minutes",
    "sedentary_minutes",
    "advice_narrative",
)

_DAILY_LOGS_DDL = """
CREATE TABLE {if_not_exists} daily_logs (
    log_date           TEXT PRIMARY KEY,   -- YYYY-MM-DD
    bed_time           TEXT,               -- ISO 8601 with offset
    wake_time          TEXT,
    sleep_quality      INTEGER,
    hydration_target   REAL,
    hydration_consumed REAL,
    workout_minutes    INTEGER,
    sedentary_minutes  INTEGER,
    advice_narrative   TEXT
)
"""

_TIP_TABLES_DDL = """
CREATE TABLE IF NOT EXISTS health_tips (
    id         INTEGER PRIMARY KEY,
    title      TEXT NOT NULL,
    content    TEXT NOT NULL,
    category   TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tip_favorites (
    tip_id       INTEGER PRIMARY KEY REFERENCES health_tips(id),
    favorited_at TEXT NOT NULL
);
"""

_SCHEMA_VERSION_DDL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    name       TEXT NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

_LEGACY_TABLE = "daily_logs_legacy"
_LEGACY_WEIGHT_COLUMN = "body_weight"


class DatabaseError(Exception):
    """Raised when database operations fail."""


class MigrationError(DatabaseError):
    """Raised when a schema migration fails. The store must not be used."""


# ---------------------------------------------------------------------------
# Introspection helpers
# ---------------------------------------------------------------------------

def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Return the lower-cased column names of ``table`` (empty if missing)."""
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return {row[1].lower() for row in rows}


def _table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row is not None


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Migration:
    """One ordered schema step.

    ``is_needed`` inspects the live schema so a step is a no-op when its
    work is already present.
    """

    version: int
    name: str
    is_needed: Callable[[sqlite3.Connection], bool]
    apply: Callable[[sqlite3.Connection], None]


def _has_body_weight(conn: sqlite3.Connection) -> bool:
    return _LEGACY_WEIGHT_COLUMN in table_columns(conn, "daily_logs")


def _copy_legacy_rows(conn: sqlite3.Connection, columns: list[str]) -> None:
    column_list = ", ".join(columns)
    conn.execute(
        f"INSERT INTO daily_logs ({column_list}) SELECT {column_list} FROM {_LEGACY_TABLE}"
    )


def _drop_body_weight(conn: sqlite3.Connection) -> None:
    legacy_columns = table_columns(conn, "daily_logs")
    conn.execute(f"ALTER TABLE daily_logs RENAME TO {_LEGACY_TABLE}")
    conn.execute(_DAILY_LOGS_DDL.format(if_not_exists=""))
    surviving = [c for c in DAILY_LOG_COLUMNS if c in legacy_columns]
    _copy_legacy_rows(conn, surviving)
    conn.execute(f"DROP TABLE {_LEGACY_TABLE}")


def _create_daily_logs(conn: sqlite3.Connection) -> None:
    conn.execute(_DAILY_LOGS_DDL.format(if_not_exists="IF NOT EXISTS"))


def _has_no_advice_column(conn: sqlite3.Connection) -> bool:
    return "advice_narrative" not in table_columns(conn, "daily_logs")


def _add_advice_narrative(conn: sqlite3.Connection) -> None:
    conn.execute("ALTER TABLE daily_logs ADD COLUMN advice_narrative TEXT")


def _tip_tables_missing(conn: sqlite3.Connection) -> bool:
    return not (_table_exists(conn, "health_tips") and _table_exists(conn, "tip_favorites"))


def _create_tip_tables(conn: sqlite3.Connection) -> None:
    for statement in _TIP_TABLES_DDL.split(";"):
        if statement.strip():
            conn.execute(statement)


def _favorites_lack_timestamp(conn: sqlite3.Connection) -> bool:
    return "favorited_at" not in table_columns(conn, "tip_favorites")


def _add_favorited_at(conn: sqlite3.Connection) -> None:
    conn.execute(
        "ALTER TABLE tip_favorites ADD COLUMN favorited_at TEXT NOT NULL DEFAULT ''"
    )


# Body-weight removal must come first: it fixes the full table shape.
MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "drop_body_weight", _has_body_weight, _drop_body_weight),
    Migration(2, "create_daily_logs", lambda conn: not _table_exists(conn, "daily_logs"),
              _create_daily_logs),
    Migration(3, "add_advice_narrative", _has_no_advice_column, _add_advice_narrative),
    Migration(4, "create_tip_tables", _tip_tables_missing, _create_tip_tables),
    Migration(5, "add_favorited_at", _favorites_lack_timestamp, _add_favorited_at),
)

SCHEMA_VERSION = MIGRATIONS[-1].version


# ---------------------------------------------------------------------------
# HealthDatabase
# ---------------------------------------------------------------------------

class HealthDatabase:
    """SQLite database manager for the daily health log.

    ``initialize()`` migrates the schema synchronously and must run before
    any other use. Afterwards every operation opens its own connection
    through :meth:`connect`; no connection is held between operations.

    Usage::

        db = HealthDatabase("~/.healthhelper/healthhelper.db")
        db.initialize()
        async with db.connect() as conn:
            ...
    """

    def __init__(self, db_path: str) -> None:
        """Validate the storage location.

        Raises:
            ConfigurationError: If ``db_path`` is blank or ``:memory:``.
        """
        if db_path is None or not str(db_path).strip():
            raise ConfigurationError("Database path is required.")
        if str(db_path).strip() == ":memory:":
            raise ConfigurationError(
                "An in-memory database cannot be shared across per-operation connections."
            )
        self._db_path = Path(str(db_path).strip()).expanduser()
        self._initialized = False

    @property
    def path(self) -> Path:
        return self._db_path

    def initialize(self) -> None:
        """Create the database file if needed and apply pending migrations.

        Idempotent: safe to call multiple times.

        Raises:
            MigrationError: If any migration step fails. The failing step's
                transaction is rolled back.
        """
        if self._initialized:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode so BEGIN/COMMIT around DDL are explicit.
        with closing(sqlite3.connect(str(self._db_path), isolation_level=None)) as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_SCHEMA_VERSION_DDL)
            self._apply_migrations(conn)

        self._initialized = True
        logger.info("Health database initialized: %s", self._db_path)

    def _apply_migrations(self, conn: sqlite3.Connection) -> None:
        current_version = self._read_version(conn)

        for migration in MIGRATIONS:
            if migration.version <= current_version:
                continue
            try:
                conn.execute("BEGIN IMMEDIATE")
                if migration.is_needed(conn):
                    migration.apply(conn)
                    logger.info(
                        "Applied schema migration V%d: %s", migration.version, migration.name
                    )
                else:
                    logger.debug(
                        "Schema migration V%d (%s) already satisfied",
                        migration.version,
                        migration.name,
                    )
                conn.execute(
                    "INSERT INTO schema_version (version, name) VALUES (?, ?)",
                    (migration.version, migration.name),
                )
                conn.execute("COMMIT")
            except Exception as exc:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.error(
                    "Schema migration V%d (%s) failed: %s", migration.version, migration.name, exc
                )
                raise MigrationError(
                    f"Migration V{migration.version} ({migration.name}) failed: {exc}"
                ) from exc

        if current_version < SCHEMA_VERSION:
            logger.info("Schema updated from version %d to %d", current_version, SCHEMA_VERSION)

    @staticmethod
    def _read_version(conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        with closing(sqlite3.connect(str(self._db_path))) as conn:
            return self._read_version(conn)

    def column_names(self, table: str) -> set[str]:
        """Return the column names currently present on ``table``."""
        with closing(sqlite3.connect(str(self._db_path))) as conn:
            return table_columns(conn, table)

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a fresh connection for one operation.

        Work that was not committed when the block exits is rolled back when
        the connection closes.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if not self._initialized:
            raise DatabaseError("Database not initialized. Call initialize() first.")

        async with aiosqlite.connect(str(self._db_path)) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys=ON")
            yield conn
