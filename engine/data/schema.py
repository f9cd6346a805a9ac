"""SQLite schema management for the page store."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

LOGGER = logging.getLogger(__name__)

MigrationFn = Callable[[sqlite3.Connection], None]


def connect(db_path: Path | str) -> sqlite3.Connection:
    """Return an autocommit SQLite connection with conservative defaults."""

    connection = sqlite3.connect(
        str(db_path),
        isolation_level=None,
        check_same_thread=False,
    )
    connection.row_factory = sqlite3.Row
    if str(db_path) != ":memory:":
        connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute("PRAGMA foreign_keys=ON;")
    connection.execute("PRAGMA synchronous=NORMAL;")
    return connection


def migrate(connection: sqlite3.Connection) -> list[str]:
    """Apply pending migrations once each; return the ids applied now."""

    _ensure_ledger(connection)
    applied: list[str] = []
    for migration_id, migration_fn in _MIGRATIONS:
        if _already_applied(connection, migration_id):
            continue
        LOGGER.info("Applying migration %s", migration_id)
        connection.execute("BEGIN IMMEDIATE")
        try:
            migration_fn(connection)
            _mark_applied(connection, migration_id)
        except Exception:
            connection.execute("ROLLBACK")
            LOGGER.exception(
                "Migration %s failed. Inspect the _migrations ledger for partial state.",
                migration_id,
            )
            raise
        connection.execute("COMMIT")
        applied.append(migration_id)
    return applied


def applied_migrations(connection: sqlite3.Connection) -> list[str]:
    rows = connection.execute("SELECT id FROM _migrations ORDER BY id").fetchall()
    return [str(row[0]) for row in rows]


def _ensure_ledger(connection: sqlite3.Connection) -> None:
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS _migrations (
            id TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL
        )
        """
    )


def _already_applied(connection: sqlite3.Connection, migration_id: str) -> bool:
    row = connection.execute(
        "SELECT 1 FROM _migrations WHERE id=?",
        (migration_id,),
    ).fetchone()
    return row is not None


def _mark_applied(connection: sqlite3.Connection, migration_id: str) -> None:
    connection.execute(
        "INSERT OR REPLACE INTO _migrations(id, applied_at) VALUES(?, ?)",
        (migration_id, datetime.now(tz=timezone.utc).isoformat(timespec="seconds")),
    )


def _migration_001_init(connection: sqlite3.Connection) -> None:
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS pages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            url TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL DEFAULT '',
            summary TEXT NOT NULL DEFAULT '',
            full_text TEXT NOT NULL DEFAULT '',
            favicon TEXT NOT NULL DEFAULT '',
            timestamp INTEGER NOT NULL
        )
        """
    )
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS page_tags (
            page_id INTEGER NOT NULL,
            position INTEGER NOT NULL,
            tag TEXT NOT NULL,
            PRIMARY KEY (page_id, position),
            FOREIGN KEY(page_id) REFERENCES pages(id) ON DELETE CASCADE
        )
        """
    )
    connection.execute("CREATE INDEX IF NOT EXISTS idx_page_tags_tag ON page_tags(tag)")


def _migration_002_recency_index(connection: sqlite3.Connection) -> None:
    connection.execute(
        "CREATE INDEX IF NOT EXISTS idx_pages_timestamp ON pages(timestamp DESC)"
    )


_MIGRATIONS: list[tuple[str, MigrationFn]] = [
    ("001_init", _migration_001_init),
    ("002_recency_index", _migration_002_recency_index),
]

MIGRATION_IDS = tuple(migration_id for migration_id, _ in _MIGRATIONS)

__all__ = ["MIGRATION_IDS", "applied_migrations", "connect", "migrate"]
