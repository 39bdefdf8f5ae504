"""Best-effort thread title summarizer.

Outcomes are returned as values and logged; nothing here ever raises into
the chat request.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from iridium.config import settings
from iridium.llm.prompt import build_title_prompt

if TYPE_CHECKING:
    from collections.abc import Sequence

    from iridium.chat.models import Message, Thread
    from iridium.llm.client import ModelClient
    from iridium.threads.store import ThreadStore

logger = logging.getLogger(__name__)

CONTEXT_MESSAGES = 4

_QUOTES = re.compile(r"^[\"'“”‘’]+|[\"'“”‘’]+$")


@dataclass(frozen=True)
class TitleOk:
    title: str


@dataclass(frozen=True)
class TitleFailed:
    reason: str


@dataclass(frozen=True)
class TitleSkipped:
    reason: str


TitleOutcome = TitleOk | TitleFailed | TitleSkipped


def should_summarize(
    thread: Thread,
    messages: Sequence[Message],
    placeholder: str | None = None,
    min_messages: int | None = None,
) -> bool:
    """True once the conversation is long enough and still has the placeholder title."""
    placeholder = placeholder or settings.placeholder_title
    min_messages = settings.title_min_messages if min_messages is None else min_messages
    return len(messages) > min_messages and thread.title == placeholder


def clean_title(raw: str, max_length: int | None = None) -> str:
    """Strip whitespace and surrounding quotes, keep the first line, cap the length."""
    max_length = max_length or settings.title_max_length
    lines = raw.strip().splitlines()
    first = lines[0] if lines else ""
    return _QUOTES.sub("", first.strip()).strip()[:max_length]


def _conversation_context(messages: Sequence[Message]) -> str:
    return "\n".join(f"{m.role}: {m.text}" for m in messages[:CONTEXT_MESSAGES])


async def summarize_title(model: ModelClient, messages: Sequence[Message]) -> TitleOutcome:
    """Ask the model for a short title. Never raises."""
    prompt = build_title_prompt(_conversation_context(messages))
    try:
        raw = await model.complete_text([{"role": "user", "content": prompt}], max_tokens=64)
    except Exception as exc:
        return TitleFailed(reason=f"model call failed: {exc}")
    title = clean_title(raw)
    if not title:
        return TitleFailed(reason="model returned an empty title")
    return TitleOk(title=title)


async def maybe_update_title(
    model: ModelClient,
    store: ThreadStore,
    thread: Thread,
    messages: Sequence[Message],
    user_id: str,
    timeout: float | None = None,
) -> TitleOutcome:
    """Summarize and persist a title when the thread qualifies.

    Model errors, timeouts and store errors are logged and returned as
    ``TitleFailed``; the caller's response is never affected.
    """
    if not should_summarize(thread, messages, placeholder=store.placeholder_title):
        return TitleSkipped(reason="not eligible")

    timeout = timeout or settings.title_timeout_seconds
    try:
        outcome = await asyncio.wait_for(summarize_title(model, messages), timeout=timeout)
    except TimeoutError:
        outcome = TitleFailed(reason=f"timed out after {timeout:.0f}s")

    if isinstance(outcome, TitleOk):
        try:
            await store.update_title(thread.id, user_id, outcome.title)
        except Exception as exc:
            outcome = TitleFailed(reason=f"could not save title: {exc}")
        else:
            thread.title = outcome.title
            logger.info("Titled thread %s: %r", thread.id, outcome.title)
            return outcome

    logger.warning("Title not updated for thread %s: %s", thread.id, outcome.reason)
    return outcome
