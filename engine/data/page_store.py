"""SQLite persistence for captured pages.

One row per distinct URL. Saving a URL that already exists updates the row in
place and keeps its id; the write timestamp is assigned by the store on every
save. Tags live in ``page_tags`` so they can be looked up by value.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from engine.events import ChangeBus

from .schema import connect, migrate

LOGGER = logging.getLogger(__name__)

__all__ = [
    "PageDraft",
    "PageRecord",
    "PageStore",
    "StorageUnavailableError",
    "StoreStats",
]


class StorageUnavailableError(RuntimeError):
    """Raised when the page database cannot be opened, read or written."""


@dataclass(frozen=True)
class PageRecord:
    id: int
    url: str
    title: str
    summary: str
    tags: tuple[str, ...]
    full_text: str
    timestamp: int
    favicon: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "summary": self.summary,
            "tags": list(self.tags),
            "fullText": self.full_text,
            "timestamp": self.timestamp,
            "favicon": self.favicon,
        }


@dataclass
class PageDraft:
    """Fields supplied to :meth:`PageStore.upsert`.

    ``None`` means "not supplied": new rows get an empty value, existing rows
    keep what they had.
    """

    url: str
    title: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[Sequence[str]] = None
    full_text: Optional[str] = None
    favicon: Optional[str] = None


@dataclass(frozen=True)
class StoreStats:
    total_pages: int
    total_tags: int
    oldest_entry: Optional[int]
    newest_entry: Optional[int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPages": self.total_pages,
            "totalTags": self.total_tags,
            "oldestEntry": self.oldest_entry,
            "newestEntry": self.newest_entry,
        }


class PageStore:
    """Keyed page repository with upsert-by-URL semantics."""

    def __init__(
        self,
        path: Path | str,
        *,
        bus: ChangeBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path if str(path) == ":memory:" else Path(path)
        self.bus = bus or ChangeBus()
        self._clock = clock
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        try:
            if isinstance(self.path, Path):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = connect(self.path)
            migrate(self._conn)
            row = self._conn.execute("SELECT MAX(timestamp) FROM pages").fetchone()
        except (sqlite3.Error, OSError) as exc:
            self.close()
            raise StorageUnavailableError(f"cannot open page store at {path}: {exc}") from exc
        self._last_timestamp = int(row[0] or 0)

    # -- lifecycle ---------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @property
    def closed(self) -> bool:
        return self._conn is None

    def __enter__(self) -> "PageStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._conn is None:
                raise StorageUnavailableError(f"{operation}: page store is closed")
            try:
                yield self._conn
            except sqlite3.Error as exc:
                LOGGER.error("Page store %s failed: %s", operation, exc)
                raise StorageUnavailableError(f"{operation} failed: {exc}") from exc

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._connection(operation) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _next_timestamp(self) -> int:
        now_ms = int(self._clock() * 1000)
        self._last_timestamp = max(now_ms, self._last_timestamp + 1)
        return self._last_timestamp

    # -- writes ------------------------------------------------------------------

    def upsert(self, draft: PageDraft) -> int:
        """Insert or update the page keyed by ``draft.url``; return its id."""

        url = draft.url
        if not isinstance(url, str) or not url.strip():
            raise ValueError("url is required")
        with self._transaction("upsert") as conn:
            existing = conn.execute("SELECT * FROM pages WHERE url = ?", (url,)).fetchone()
            timestamp = self._next_timestamp()
            if existing is None:
                cursor = conn.execute(
                    """
                    INSERT INTO pages (url, title, summary, full_text, favicon, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        url,
                        draft.title or "",
                        draft.summary or "",
                        draft.full_text or "",
                        draft.favicon or "",
                        timestamp,
                    ),
                )
                page_id = int(cursor.lastrowid)
                created = True
            else:
                page_id = int(existing["id"])
                conn.execute(
                    """
                    UPDATE pages
                    SET title = ?, summary = ?, full_text = ?, favicon = ?, timestamp = ?
                    WHERE id = ?
                    """,
                    (
                        _merge(draft.title, existing["title"]),
                        _merge(draft.summary, existing["summary"]),
                        _merge(draft.full_text, existing["full_text"]),
                        _merge(draft.favicon, existing["favicon"]),
                        timestamp,
                        page_id,
                    ),
                )
                created = False
            if draft.tags is not None or created:
                self._replace_tags(conn, page_id, draft.tags or ())
        self.bus.publish(
            {"event": "upsert", "id": page_id, "url": url, "created": created}
        )
        LOGGER.debug("Saved page %s (id=%s, created=%s)", url, page_id, created)
        return page_id

    @staticmethod
    def _replace_tags(conn: sqlite3.Connection, page_id: int, tags: Iterable[str]) -> None:
        conn.execute("DELETE FROM page_tags WHERE page_id = ?", (page_id,))
        conn.executemany(
            "INSERT INTO page_tags (page_id, position, tag) VALUES (?, ?, ?)",
            [(page_id, position, str(tag)) for position, tag in enumerate(tags)],
        )

    def delete(self, page_id: int) -> bool:
        """Remove one page; deleting a missing id is not an error."""

        with self._transaction("delete") as conn:
            cursor = conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))
            removed = cursor.rowcount > 0
        if removed:
            self.bus.publish({"event": "delete", "id": page_id})
        return removed

    def clear(self) -> int:
        """Remove every page and return how many were stored."""

        with self._transaction("clear") as conn:
            conn.execute("DELETE FROM page_tags")
            cursor = conn.execute("DELETE FROM pages")
            removed = max(cursor.rowcount, 0)
        self.bus.publish({"event": "clear", "removed": removed})
        return removed

    # -- reads -------------------------------------------------------------------

    def get_all(self) -> list[PageRecord]:
        with self._connection("get_all") as conn:
            rows = conn.execute("SELECT * FROM pages ORDER BY id").fetchall()
            tag_rows = conn.execute(
                "SELECT page_id, tag FROM page_tags ORDER BY page_id, position"
            ).fetchall()
        tags_by_page: dict[int, list[str]] = {}
        for tag_row in tag_rows:
            tags_by_page.setdefault(int(tag_row[0]), []).append(str(tag_row[1]))
        return [_row_to_record(row, tags_by_page.get(int(row["id"]), ())) for row in rows]

    def get_by_id(self, page_id: int) -> PageRecord | None:
        with self._connection("get_by_id") as conn:
            row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
            if row is None:
                return None
            tags = self._tags_for(conn, int(row["id"]))
        return _row_to_record(row, tags)

    def get_by_url(self, url: str) -> PageRecord | None:
        with self._connection("get_by_url") as conn:
            row = conn.execute("SELECT * FROM pages WHERE url = ?", (url,)).fetchone()
            if row is None:
                return None
            tags = self._tags_for(conn, int(row["id"]))
        return _row_to_record(row, tags)

    def pages_by_tag(self, tag: str) -> list[PageRecord]:
        """Return pages carrying exactly ``tag`` (case-sensitive), in id order."""

        with self._connection("pages_by_tag") as conn:
            rows = conn.execute(
                """
                SELECT * FROM pages
                WHERE id IN (SELECT page_id FROM page_tags WHERE tag = ?)
                ORDER BY id
                """,
                (tag,),
            ).fetchall()
            records = [_row_to_record(row, self._tags_for(conn, int(row["id"]))) for row in rows]
        return records

    def stats(self) -> StoreStats:
        with self._connection("stats") as conn:
            total, oldest, newest = conn.execute(
                "SELECT COUNT(*), MIN(timestamp), MAX(timestamp) FROM pages"
            ).fetchone()
            (total_tags,) = conn.execute(
                "SELECT COUNT(DISTINCT tag) FROM page_tags"
            ).fetchone()
        return StoreStats(
            total_pages=int(total),
            total_tags=int(total_tags),
            oldest_entry=int(oldest) if oldest is not None else None,
            newest_entry=int(newest) if newest is not None else None,
        )

    @staticmethod
    def _tags_for(conn: sqlite3.Connection, page_id: int) -> list[str]:
        rows = conn.execute(
            "SELECT tag FROM page_tags WHERE page_id = ? ORDER BY position",
            (page_id,),
        ).fetchall()
        return [str(row[0]) for row in rows]


def _merge(new_value: Optional[str], old_value: Any) -> str:
    if new_value is None:
        return str(old_value or "")
    return new_value


def _row_to_record(row: sqlite3.Row, tags: Iterable[str]) -> PageRecord:
    return PageRecord(
        id=int(row["id"]),
        url=str(row["url"]),
        title=str(row["title"] or ""),
        summary=str(row["summary"] or ""),
        tags=tuple(tags),
        full_text=str(row["full_text"] or ""),
        timestamp=int(row["timestamp"]),
        favicon=str(row["favicon"] or ""),
    )
