"""Async Claude API client: one streamed step at a time, plus single-shot text.

The tool-calling loop itself lives in ``iridium.chat.agent``; this module
only turns one provider call into a sequence of step events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import anthropic

from iridium.errors import UpstreamProviderError
from iridium.llm.models import friendly, resolve_model

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolCallStart:
    id: str
    name: str


@dataclass(frozen=True)
class ToolCallDelta:
    id: str
    partial_json: str


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    input: dict[str, Any]


@dataclass(frozen=True)
class StepComplete:
    """End of one provider call.

    ``content`` is the assistant turn in provider format, ready to be
    appended to the message history for the next step.
    """

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: str | None = None
    content: list[dict[str, Any]] = field(default_factory=list)


StepEvent = TextDelta | ToolCallStart | ToolCallDelta | StepComplete


def _serialize_content(content: list[Any]) -> list[dict[str, Any]]:
    """Convert SDK content blocks to plain dicts for message history."""
    result: list[dict[str, Any]] = []
    for block in content:
        if block.type == "text":
            result.append({"type": "text", "text": block.text})
        elif block.type == "tool_use":
            result.append({
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            })
    return result


class ModelClient:
    """Thin wrapper over ``anthropic.AsyncAnthropic``.

    Constructed explicitly and passed to whoever needs it; tests pass a
    fake SDK client with the same ``messages.stream``/``messages.create``
    surface.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        chat_model: str = "sonnet",
        title_model: str = "haiku",
        max_tokens: int = 4096,
    ) -> None:
        self._client = client
        self.chat_model = resolve_model(chat_model)
        self.title_model = resolve_model(title_model, default="haiku")
        self.max_tokens = max_tokens
        logger.info(
            "Models: chat=%s, title=%s", friendly(self.chat_model), friendly(self.title_model)
        )

    @classmethod
    def from_api_key(cls, api_key: str, **kwargs: Any) -> ModelClient:
        return cls(anthropic.AsyncAnthropic(api_key=api_key), **kwargs)

    async def stream_step(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StepEvent]:
        """Run one model call, yielding deltas as they arrive.

        The last event is always a ``StepComplete``.

        Raises:
            UpstreamProviderError: The provider call failed.
        """
        kwargs: dict[str, Any] = {
            "model": self.chat_model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = tools

        current_tool_id = ""
        try:
            async with self._client.messages.stream(**kwargs) as stream:
                async for event in stream:
                    if event.type == "text":
                        yield TextDelta(event.text)
                    elif event.type == "content_block_start":
                        block = event.content_block
                        if block.type == "tool_use":
                            current_tool_id = block.id
                            yield ToolCallStart(id=block.id, name=block.name)
                    elif event.type == "input_json" and current_tool_id:
                        yield ToolCallDelta(id=current_tool_id, partial_json=event.partial_json)

                response = await stream.get_final_message()
        except anthropic.APIError as exc:
            logger.exception("Model call failed")
            raise UpstreamProviderError("model", str(exc)) from exc

        tool_calls = [
            ToolCall(id=b.id, name=b.name, input=b.input)
            for b in response.content
            if b.type == "tool_use"
        ]
        yield StepComplete(
            text="".join(b.text for b in response.content if b.type == "text"),
            tool_calls=tool_calls,
            stop_reason=response.stop_reason,
            content=_serialize_content(response.content),
        )

    async def complete_text(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 256,
    ) -> str:
        """Single-shot call — no tools, no streaming.

        Use this for isolated tasks such as title summarization.
        """
        kwargs: dict[str, Any] = {
            "model": model or self.title_model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system is not None:
            kwargs["system"] = system
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise UpstreamProviderError("model", str(exc)) from exc
        return "".join(b.text for b in response.content if getattr(b, "type", "text") == "text")
