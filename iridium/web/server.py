"""aiohttp application for the chat API.

Routes:

- ``POST /api/chat`` — streamed chat turn
- ``GET /api/chat`` — the caller's threads (loader)
- ``POST /api/threads`` — create a thread
- ``GET|PATCH|DELETE /api/threads/{thread_id}`` — read, rename, delete
- ``GET /health`` — liveness
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aiohttp import web

from iridium.auth.session import require_user
from iridium.chat.request import parse_chat_request
from iridium.chat.stream import UIMessageStream
from iridium.errors import ThreadNotFound, Unauthorized, UpstreamProviderError, ValidationError

if TYPE_CHECKING:
    from iridium.auth.session import SessionResolver, User
    from iridium.chat.service import ChatService
    from iridium.threads.store import ThreadStore

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100


@dataclass
class Services:
    """Explicitly constructed collaborators shared by all handlers."""

    sessions: SessionResolver
    threads: ThreadStore
    chat: ChatService


SERVICES = web.AppKey("services", Services)


def _bad_request(exc: ValidationError) -> web.Response:
    return web.json_response({"error": exc.message, "field": exc.field}, status=400)


def _not_found(thread_id: str) -> web.Response:
    return web.json_response({"error": "Thread not found", "threadId": thread_id}, status=404)


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationError("body", "Request body must be valid JSON") from exc


async def _caller(request: web.Request) -> User:
    return await require_user(request.app[SERVICES].sessions, request)


@web.middleware
async def _error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Map application errors that escape a handler to HTTP responses."""
    try:
        return await handler(request)
    except Unauthorized:
        return web.Response(status=401)
    except ValidationError as exc:
        return _bad_request(exc)
    except ThreadNotFound as exc:
        return _not_found(exc.thread_id)
    except UpstreamProviderError as exc:
        logger.error("Upstream failure on %s %s: %s", request.method, request.path, exc)
        return web.json_response({"error": "Upstream provider failed"}, status=500)


# -- Chat ----------------------------------------------------------------------


async def _post_chat(request: web.Request) -> web.StreamResponse:
    """Run one chat turn and stream it back."""
    services = request.app[SERVICES]
    user = await _caller(request)

    chat = parse_chat_request(await _read_json(request))
    chat.latest_user_message()

    thread, title = await services.chat.prepare(chat, user)
    logger.info(
        "Chat turn: user=%s thread=%s messages=%d title=%s",
        user.id,
        thread.id,
        len(chat.messages),
        type(title).__name__,
    )

    stream = UIMessageStream(request)
    await services.chat.stream_reply(stream, chat, thread, user)
    return stream.response


async def _get_chat(request: web.Request) -> web.Response:
    """Loader: the caller's threads, newest first."""
    services = request.app[SERVICES]
    user = await _caller(request)
    threads = await services.threads.list_threads(user.id)
    return web.json_response({"threads": [t.to_wire() for t in threads]})


# -- Threads -------------------------------------------------------------------


async def _create_thread(request: web.Request) -> web.Response:
    services = request.app[SERVICES]
    user = await _caller(request)
    thread = await services.threads.create_thread(user.id)
    return web.json_response({"thread": thread.to_wire()}, status=201)


async def _get_thread(request: web.Request) -> web.Response:
    services = request.app[SERVICES]
    user = await _caller(request)
    thread_id = request.match_info["thread_id"]
    thread = await services.threads.get_thread(thread_id, user.id)
    if thread is None:
        return _not_found(thread_id)
    return web.json_response({"thread": thread.to_wire()})


async def _rename_thread(request: web.Request) -> web.Response:
    services = request.app[SERVICES]
    user = await _caller(request)
    thread_id = request.match_info["thread_id"]

    body = await _read_json(request)
    title = body.get("title") if isinstance(body, dict) else None
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title", "Title must be a non-empty string")

    title = title.strip()[:MAX_TITLE_LENGTH]
    updated = await services.threads.update_title(thread_id, user.id, title)
    if not updated:
        return _not_found(thread_id)
    return web.json_response({"ok": True})


async def _delete_thread(request: web.Request) -> web.Response:
    services = request.app[SERVICES]
    user = await _caller(request)
    thread_id = request.match_info["thread_id"]
    if not await services.threads.delete_thread(thread_id, user.id):
        return _not_found(thread_id)
    return web.json_response({"ok": True})


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_app(services: Services) -> web.Application:
    """Build the aiohttp Application with routes.

    Unregistered methods on a known path (e.g. ``PUT /api/chat``) get
    aiohttp's 405 response.
    """
    app = web.Application(middlewares=[_error_middleware])
    app[SERVICES] = services
    app.router.add_get("/health", _health)
    app.router.add_post("/api/chat", _post_chat)
    app.router.add_get("/api/chat", _get_chat)
    app.router.add_post("/api/threads", _create_thread)
    app.router.add_get("/api/threads/{thread_id}", _get_thread)
    app.router.add_patch("/api/threads/{thread_id}", _rename_thread)
    app.router.add_delete("/api/threads/{thread_id}", _delete_thread)
    return app
