"""Chat turn orchestration: title, tool loop, streaming and persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from iridium.chat.agent import AgentRun
from iridium.chat.convert import to_model_messages
from iridium.chat.models import Message, make_message_id
from iridium.chat.title import TitleOutcome, maybe_update_title
from iridium.config import settings
from iridium.errors import PersistenceError
from iridium.llm.prompt import build_system_prompt
from iridium.tools.base import CallerContext

if TYPE_CHECKING:
    from iridium.auth.session import User
    from iridium.chat.models import Thread
    from iridium.chat.request import ChatRequest
    from iridium.chat.stream import UIMessageStream
    from iridium.llm.client import ModelClient
    from iridium.threads.store import ThreadStore
    from iridium.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SAVE_FAILED_TEXT = "Reply delivered but could not be saved."
STREAM_FAILED_TEXT = "The assistant stopped responding. Please try again."


@dataclass
class TurnResult:
    """What happened during one chat turn."""

    message: Message
    steps: int
    finish_reason: str | None
    saved: bool


class ChatService:
    """Runs one chat turn for an authenticated caller.

    All collaborators are passed in; nothing here reaches for module-level
    clients.
    """

    def __init__(
        self,
        model: ModelClient,
        registry: ToolRegistry,
        threads: ThreadStore,
        max_steps: int | None = None,
        persist_window: int | None = None,
    ) -> None:
        self.model = model
        self.registry = registry
        self.threads = threads
        self.max_steps = max_steps or settings.max_tool_steps
        self.persist_window = persist_window or settings.persist_window

    async def prepare(self, chat: ChatRequest, user: User) -> tuple[Thread, TitleOutcome]:
        """Ensure the thread exists and run the best-effort title summarizer.

        Raises:
            ThreadNotFound: The thread ID belongs to another user.
        """
        thread = await self.threads.ensure_thread(chat.id, user.id)
        outcome = await maybe_update_title(self.model, self.threads, thread, chat.messages, user.id)
        return thread, outcome

    async def stream_reply(
        self,
        stream: UIMessageStream,
        chat: ChatRequest,
        thread: Thread,
        user: User,
    ) -> TurnResult:
        """Run the tool loop, relay it to ``stream``, then persist the turn.

        The stream is only opened once the model has produced its first
        output, so a failure before that point propagates (a provider
        failure as ``UpstreamProviderError``) and can still be answered with
        a 500. After that, any failure is reported in-band as a
        ``stream_failed`` error chunk and the stream is closed.
        """
        message_id = make_message_id()
        caller = CallerContext(user_id=user.id, thread_id=thread.id)
        run = AgentRun(self.model, self.registry, caller, max_steps=self.max_steps)
        system_extra, history = to_model_messages(chat.messages)
        chunks = run.run(history, build_system_prompt(extra=system_extra))

        buffered = []
        try:
            async for chunk in chunks:
                buffered.append(chunk)
                if chunk["type"] != "start-step":
                    break
        except Exception:
            await chunks.aclose()
            raise

        await stream.open()
        await stream.send({"type": "start", "messageId": message_id})
        for chunk in buffered:
            await stream.send(chunk)

        try:
            async for chunk in chunks:
                await stream.send(chunk)
        except Exception:
            logger.exception("Model stream failed for thread %s", thread.id)
            await chunks.aclose()
            await stream.send_error(STREAM_FAILED_TEXT, "stream_failed")
            await stream.close()
            return TurnResult(
                message=run.to_message(message_id),
                steps=run.steps,
                finish_reason=None,
                saved=False,
            )

        await stream.send({
            "type": "finish",
            "messageMetadata": {"finishReason": run.finish_reason, "steps": run.steps},
        })

        assistant = run.to_message(message_id)
        saved = await self._persist([*chat.messages, assistant], thread.id, user.id)
        if not saved:
            await stream.send_error(SAVE_FAILED_TEXT, "persistence_failed")
        await stream.close()
        logger.info(
            "Turn done for thread %s: steps=%d finish=%s chunks=%d saved=%s",
            thread.id,
            run.steps,
            run.finish_reason,
            stream.chunks_sent,
            saved,
        )

        return TurnResult(
            message=assistant,
            steps=run.steps,
            finish_reason=run.finish_reason,
            saved=saved,
        )

    async def _persist(self, messages: list[Message], thread_id: str, user_id: str) -> bool:
        try:
            await self.threads.save_chat(messages, thread_id, user_id, window=self.persist_window)
        except PersistenceError:
            logger.exception("Reply streamed but not saved for thread %s", thread_id)
            return False
        return True
