"""Session lookup — resolves the caller of an HTTP request to a user.

Sessions are written by the auth provider; this module only reads them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

import aiosqlite

from iridium.config import settings
from iridium.errors import Unauthorized

if TYPE_CHECKING:
    from pathlib import Path

    from aiohttp import web

logger = logging.getLogger(__name__)

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        name TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        expires_at TEXT NOT NULL
    )
    """,
)


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str = ""


class SessionResolver(Protocol):
    async def resolve(self, request: web.Request) -> User | None: ...


class SessionStore:
    """Reads users and sessions from SQLite."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            for ddl in _CREATE_TABLES:
                await db.execute(ddl)
            await db.commit()
            self._initialised = True
        return db

    async def get_user_by_token(self, token: str, now: datetime | None = None) -> User | None:
        """Return the user of an unexpired session, or None."""
        now = now or datetime.now(UTC)
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT u.id, u.email, u.name, s.expires_at
                FROM sessions s JOIN users u ON u.id = s.user_id
                WHERE s.token = ?
                """,
                (token,),
            )
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            return None
        expires_at = datetime.fromisoformat(row[3])
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        if expires_at <= now:
            logger.info("Session for user %s has expired", row[0])
            return None
        return User(id=row[0], email=row[1], name=row[2])

    async def add_session(self, user: User, token: str, expires_at: datetime) -> None:
        """Insert or replace a user and one of their sessions."""
        db = await self._connect()
        try:
            await db.execute(
                "INSERT OR REPLACE INTO users (id, email, name) VALUES (?, ?, ?)",
                (user.id, user.email, user.name),
            )
            await db.execute(
                "INSERT OR REPLACE INTO sessions (token, user_id, expires_at) VALUES (?, ?, ?)",
                (token, user.id, expires_at.isoformat()),
            )
            await db.commit()
        finally:
            await db.close()


class CookieSessionResolver:
    """Resolve the session token from the session cookie or a bearer header."""

    def __init__(self, store: SessionStore, cookie_name: str | None = None) -> None:
        self._store = store
        self._cookie_name = cookie_name or settings.session_cookie_name

    def _token(self, request: web.Request) -> str:
        cookie = request.cookies.get(self._cookie_name, "")
        if cookie:
            # Signed cookies carry "<token>.<signature>".
            return cookie.split(".", 1)[0]
        auth = request.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            return auth[7:].strip()
        return ""

    async def resolve(self, request: web.Request) -> User | None:
        token = self._token(request)
        if not token:
            return None
        return await self._store.get_user_by_token(token)


async def require_user(resolver: SessionResolver, request: web.Request) -> User:
    """Return the caller, or raise ``Unauthorized``."""
    user = await resolver.resolve(request)
    if user is None:
        raise Unauthorized("No valid session")
    return user
