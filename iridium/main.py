"""Iridium chat service entry point."""

from __future__ import annotations

import logging

from aiohttp import web

from iridium.auth.session import CookieSessionResolver, SessionStore
from iridium.billing.client import BillingClient
from iridium.chat.service import ChatService
from iridium.config import Settings, settings
from iridium.llm.client import ModelClient
from iridium.notes.store import NoteStore
from iridium.threads.store import ThreadStore
from iridium.tools import build_registry
from iridium.web.server import Services, create_app

logger = logging.getLogger(__name__)


def build_services(config: Settings) -> Services:
    """Construct every store and client from settings."""
    threads = ThreadStore(db_path=config.database_path, placeholder_title=config.placeholder_title)
    notes = NoteStore(db_path=config.database_path)
    sessions = CookieSessionResolver(
        SessionStore(db_path=config.database_path),
        cookie_name=config.session_cookie_name,
    )
    billing = BillingClient(
        access_token=config.billing_access_token,
        base_url=config.billing_api_url,
        organization_id=config.billing_organization_id,
    )
    model = ModelClient.from_api_key(
        config.anthropic_api_key,
        chat_model=config.default_chat_model,
        title_model=config.default_title_model,
        max_tokens=config.chat_max_tokens,
    )
    registry = build_registry(notes, billing, currency=config.billing_currency)
    logger.info("Registered tools: %s", ", ".join(registry.tool_names))

    chat = ChatService(
        model,
        registry,
        threads,
        max_steps=config.max_tool_steps,
        persist_window=config.persist_window,
    )
    return Services(sessions=sessions, threads=threads, chat=chat)


def main() -> None:
    """Start the HTTP server."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty; model calls will fail")
    if not settings.billing_enabled:
        logger.warning("BILLING_ACCESS_TOKEN is empty; billing metrics tools are disabled")

    app = create_app(build_services(settings))
    logger.info("Starting Iridium chat on %s:%d", settings.host, settings.port)
    web.run_app(app, host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
