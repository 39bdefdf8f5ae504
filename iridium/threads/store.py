"""ThreadStore — aiosqlite persistence for threads and their messages."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from iridium.chat.models import Message, Thread
from iridium.config import settings
from iridium.errors import PersistenceError, ThreadNotFound

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS threads (
        id TEXT PRIMARY KEY,
        created_by TEXT NOT NULL,
        title TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_threads_created_by ON threads(created_by)",
    """
    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        thread_id TEXT NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        user_id TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_thread ON messages(thread_id)",
)

# Re-saving an id overwrites its content. The WHERE clause keeps an id that
# already belongs to another thread from being hijacked.
_UPSERT_MESSAGE = """
INSERT INTO messages (id, thread_id, role, content, user_id, created_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET content = excluded.content
WHERE messages.thread_id = excluded.thread_id
"""


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _row_to_message(row: tuple) -> Message:
    msg_id, role, content, created_at = row
    return Message(id=msg_id, role=role, parts=json.loads(content), created_at=created_at)


class ThreadStore:
    """Persists threads and messages in SQLite.

    Every read and write that acts for a user takes that user's ID and
    filters on ``threads.created_by``. Pass an explicit *db_path* for test
    isolation.
    """

    def __init__(self, db_path: Path | None = None, placeholder_title: str | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self.placeholder_title = placeholder_title or settings.placeholder_title
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        await db.execute("PRAGMA foreign_keys = ON")
        if not self._initialised:
            for ddl in _CREATE_TABLES:
                await db.execute(ddl)
            await db.commit()
            self._initialised = True
        return db

    async def _fetch_messages(self, db: aiosqlite.Connection, thread_id: str) -> list[Message]:
        cursor = await db.execute(
            """
            SELECT id, role, content, created_at FROM messages
            WHERE thread_id = ? ORDER BY created_at, rowid
            """,
            (thread_id,),
        )
        rows = await cursor.fetchall()
        messages: list[Message] = []
        for row in rows:
            try:
                messages.append(_row_to_message(row))
            except (ValueError, PydanticValidationError):
                logger.warning("Skipping unreadable message %s in thread %s", row[0], thread_id)
        return messages

    # -- Threads ---------------------------------------------------------------

    async def create_thread(self, user_id: str, thread_id: str | None = None) -> Thread:
        """Insert a new thread with the placeholder title."""
        now = _now()
        thread = Thread(
            id=thread_id or uuid.uuid4().hex,
            created_by=user_id,
            title=self.placeholder_title,
            created_at=now,
            updated_at=now,
        )
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO threads (id, created_by, title, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?)",
                (thread.id, thread.created_by, thread.title, thread.created_at, thread.updated_at),
            )
            await db.commit()
            logger.info("Created thread %s for user %s", thread.id, user_id)
            return thread
        finally:
            await db.close()

    async def get_thread(self, thread_id: str, user_id: str) -> Thread | None:
        """Fetch a thread with its messages, or None if missing or not owned."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id, created_by, title, created_at, updated_at FROM threads"
                " WHERE id = ? AND created_by = ?",
                (thread_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            thread = Thread(*row)
            thread.messages = await self._fetch_messages(db, thread_id)
            return thread
        finally:
            await db.close()

    async def ensure_thread(self, thread_id: str, user_id: str) -> Thread:
        """Return the caller's thread, creating it on first message.

        Raises:
            ThreadNotFound: The ID is taken by another user's thread.
        """
        thread = await self.get_thread(thread_id, user_id)
        if thread is not None:
            return thread
        try:
            return await self.create_thread(user_id, thread_id=thread_id)
        except aiosqlite.IntegrityError as exc:
            # Either another user owns this ID, or a concurrent request
            # created it first.
            thread = await self.get_thread(thread_id, user_id)
            if thread is None:
                raise ThreadNotFound(thread_id) from exc
            return thread

    async def list_threads(self, user_id: str) -> list[Thread]:
        """Return the user's threads, newest first, each with its messages."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT id, created_by, title, created_at, updated_at FROM threads"
                " WHERE created_by = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            )
            rows = await cursor.fetchall()
            threads = [Thread(*row) for row in rows]
            for thread in threads:
                thread.messages = await self._fetch_messages(db, thread.id)
            return threads
        finally:
            await db.close()

    async def update_title(self, thread_id: str, user_id: str, title: str) -> bool:
        """Rename a thread. Returns True if a row was updated."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE threads SET title = ?, updated_at = ? WHERE id = ? AND created_by = ?",
                (title, _now(), thread_id, user_id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def delete_thread(self, thread_id: str, user_id: str) -> bool:
        """Delete a thread and its messages. Returns True if it existed."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "DELETE FROM threads WHERE id = ? AND created_by = ?", (thread_id, user_id)
            )
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted thread %s", thread_id)
            return deleted
        finally:
            await db.close()

    # -- Messages --------------------------------------------------------------

    async def get_messages(self, thread_id: str) -> list[Message]:
        db = await self._connect()
        try:
            return await self._fetch_messages(db, thread_id)
        finally:
            await db.close()

    async def save_message(self, message: Message, thread_id: str, user_id: str | None) -> None:
        """Insert or overwrite a single message by ID."""
        await self.save_messages([message], thread_id, user_id)

    async def save_messages(
        self, messages: Sequence[Message], thread_id: str, user_id: str | None
    ) -> None:
        """Upsert messages in order. ``user_id`` is stored on user messages only."""
        db = await self._connect()
        try:
            for message in messages:
                await db.execute(
                    _UPSERT_MESSAGE,
                    (
                        message.id,
                        thread_id,
                        message.role,
                        message.parts_json(),
                        user_id if message.role == "user" else None,
                        message.created_at or _now(),
                    ),
                )
            await db.execute("UPDATE threads SET updated_at = ? WHERE id = ?", (_now(), thread_id))
            await db.commit()
        finally:
            await db.close()

    async def save_chat(
        self,
        messages: Sequence[Message],
        thread_id: str,
        user_id: str,
        window: int | None = None,
    ) -> list[Message]:
        """Persist the newest ``window`` messages of a finished turn.

        Returns the messages that were written.

        Raises:
            PersistenceError: The thread is not the caller's or the write failed.
        """
        window = window or settings.persist_window
        newest = list(messages[-window:])
        try:
            if await self.get_thread(thread_id, user_id) is None:
                raise PersistenceError(f"Thread not found: {thread_id}")
            await self.save_messages(newest, thread_id, user_id)
        except aiosqlite.Error as exc:
            logger.exception("Failed to save chat for thread %s", thread_id)
            raise PersistenceError(f"Failed to save chat: {exc}") from exc
        logger.info("Saved %d message(s) to thread %s", len(newest), thread_id)
        return newest
