"""
MemoryStore: durable note storage for the personal agent.

Notes live in a single SQLite table accessed through ``aiosqlite``. Every
operation opens a short-lived connection and runs as its own transaction
(commit on success, rollback on failure), so a note is visible to the next
read as soon as ``store()`` returns and an interrupted write never leaves a
half-written row behind.

Typical usage::

    store = MemoryStore("personal_agent.db")
    await store.initialize()

    note_id = await store.store("Gym on Mon/Wed at 5pm")
    notes = await store.search("gym", limit=10)
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import aiosqlite

from personal_agent.memory.models import Note

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Fixed-width UTC text so that lexical order equals chronological order.
# Matches the layout of SQLite's CURRENT_TIMESTAMP, plus microseconds.
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class PersistenceError(Exception):
    """Raised when the note store is unreachable or rejects an operation."""


class MemoryStore:
    """Async SQLite-backed store of user notes.

    Attributes:
        db_path: Path of the SQLite database file (``":memory:"`` is not
            useful here because every operation opens a new connection).
        table_name: Name of the notes table. Validated once at construction;
            it is interpolated into SQL and must never come from user input.
    """

    def __init__(self, db_path: str, table_name: str = "memory_notes") -> None:
        if not _IDENTIFIER_RE.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        self.db_path = db_path
        self.table_name = table_name

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection; commit on success, roll back on failure.

        SQLite errors are re-raised as ``PersistenceError``.
        """
        try:
            async with aiosqlite.connect(self.db_path) as conn:
                await conn.create_function("casefold", 1, _casefold, deterministic=True)
                try:
                    yield conn
                    await conn.commit()
                except Exception:
                    await conn.rollback()
                    raise
        except aiosqlite.Error as exc:
            logger.error("Note store operation failed on %s: %s", self.db_path, exc)
            raise PersistenceError(f"Note store operation failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the notes table if it does not exist yet.

        Raises:
            PersistenceError: If the database cannot be opened or the schema
                cannot be created.
        """
        logger.info("Initializing note store at %s (table=%s)", self.db_path, self.table_name)
        async with self._acquire() as conn:
            await conn.execute(
                f"""CREATE TABLE IF NOT EXISTS {self.table_name} (
                    id TEXT PRIMARY KEY,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    tags TEXT
                )"""
            )
        logger.info("Note store initialized")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def store(self, content: str, tags: list[str] | None = None) -> str:
        """Durably store a new note and return its ID.

        Args:
            content: The text to remember. Must not be empty or whitespace.
            tags: Optional tags, stored as a JSON array.

        Raises:
            ValueError: If *content* is empty.
            PersistenceError: If the write fails.
        """
        if not content or not content.strip():
            raise ValueError("Note content must not be empty.")

        note_id = _new_note_id()
        created_at = datetime.now(timezone.utc).strftime(_TIMESTAMP_FORMAT)
        tags_json = json.dumps(list(tags)) if tags is not None else None

        async with self._acquire() as conn:
            await conn.execute(
                f"INSERT INTO {self.table_name} (id, content, created_at, tags) "
                "VALUES (?, ?, ?, ?)",
                (note_id, content, created_at, tags_json),
            )
        logger.info("Stored note %s (%d chars)", note_id, len(content))
        return note_id

    async def search(self, query: str, limit: int) -> list[Note]:
        """Return notes whose content contains *query*, ignoring case.

        The match is a plain substring test (no wildcards, no ranking). An
        empty query matches every note. Results are newest first.
        """
        _check_limit(limit)
        async with self._acquire() as conn:
            rows = await conn.execute_fetchall(
                f"SELECT id, content, created_at, tags FROM {self.table_name} "
                "WHERE instr(casefold(content), ?) > 0 "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (query.casefold(), limit),
            )
        notes = [_row_to_note(row) for row in rows]
        logger.debug("Search %r matched %d note(s)", query, len(notes))
        return notes

    async def list(self, limit: int) -> list[Note]:
        """Return the most recently stored notes, newest first."""
        _check_limit(limit)
        async with self._acquire() as conn:
            rows = await conn.execute_fetchall(
                f"SELECT id, content, created_at, tags FROM {self.table_name} "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (limit,),
            )
        return [_row_to_note(row) for row in rows]

    async def delete(self, note_id: str) -> bool:
        """Delete the note with exactly this ID.

        Returns:
            ``True`` if a note was removed, ``False`` if no such note exists.
        """
        async with self._acquire() as conn:
            cursor = await conn.execute(
                f"DELETE FROM {self.table_name} WHERE id = ?",
                (note_id,),
            )
            deleted = cursor.rowcount > 0
        logger.info("Delete note %s: %s", note_id, "removed" if deleted else "not found")
        return deleted

    async def count(self) -> int:
        """Return the number of stored notes."""
        async with self._acquire() as conn:
            rows = await conn.execute_fetchall(f"SELECT COUNT(*) FROM {self.table_name}")
        return int(rows[0][0])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _check_limit(limit: int) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")


def _new_note_id() -> str:
    """Return ``note_<local timestamp>_<random suffix>``."""
    return f"note_{datetime.now():%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"


def _parse_timestamp(value: str) -> datetime:
    # Rows written through the column default have no fractional part.
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_note(row) -> Note:
    tags = tuple(json.loads(row[3])) if row[3] else None
    return Note(
        id=row[0],
        content=row[1],
        created_at=_parse_timestamp(row[2]),
        tags=tags,
    )
