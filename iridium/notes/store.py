"""NoteStore — aiosqlite CRUD for user notes."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiosqlite

from iridium.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

_CREATE_INDEX = "CREATE INDEX IF NOT EXISTS idx_notes_user_id ON notes(user_id)"

_COLUMNS = "id, user_id, title, content, created_at, updated_at"


@dataclass
class Note:
    id: str
    user_id: str
    title: str
    content: str
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        """Shape returned to the model; the owner ID is left out."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": self.created_at,
        }


def _escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class NoteStore:
    """Persists notes in SQLite. Every query is scoped to one user."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.execute(_CREATE_INDEX)
            await db.commit()
            self._initialised = True
        return db

    async def create_note(self, user_id: str, title: str, content: str) -> Note:
        now = datetime.now(UTC).isoformat()
        note = Note(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO notes ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (note.id, note.user_id, note.title, note.content, note.created_at, note.updated_at),
            )
            await db.commit()
            logger.info("Created note %s for user %s", note.id, user_id)
            return note
        finally:
            await db.close()

    async def list_notes(self, user_id: str) -> list[Note]:
        """Return the user's notes, newest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM notes WHERE user_id = ?"
                " ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [Note(*row) for row in rows]
        finally:
            await db.close()

    async def search_notes(self, user_id: str, query: str) -> list[Note]:
        """Case-insensitive substring match on title or content, newest first."""
        pattern = f"%{_escape_like(query.lower())}%"
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM notes WHERE user_id = ?"
                " AND (lower(title) LIKE ? ESCAPE '\\' OR lower(content) LIKE ? ESCAPE '\\')"
                " ORDER BY created_at DESC, rowid DESC",
                (user_id, pattern, pattern),
            )
            rows = await cursor.fetchall()
            return [Note(*row) for row in rows]
        finally:
            await db.close()
