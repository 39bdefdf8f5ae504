"""Bounded tool-calling loop.

Each step is one model call. A step that ends without tool calls finishes
the run; otherwise every requested tool is dispatched through the registry,
its result is fed back, and the next step starts, up to ``max_steps``.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Literal

from iridium.chat.models import Message, Part, TextPart, ToolInvocationPart, ToolResultPart
from iridium.llm.client import StepComplete, TextDelta, ToolCallDelta, ToolCallStart

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from iridium.llm.client import ModelClient
    from iridium.tools.base import CallerContext
    from iridium.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 5

FinishReason = Literal["stop", "step-limit"]


class AgentRun:
    """One assistant turn.

    Iterate ``run()`` to drive the loop; it yields UI stream chunks as they
    are produced. Afterwards ``parts`` holds the assistant transcript (text,
    tool invocations and tool results, in order), ``steps`` the number of
    model calls made and ``finish_reason`` why the loop stopped.
    """

    def __init__(
        self,
        model: ModelClient,
        registry: ToolRegistry,
        caller: CallerContext,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        if max_steps < 1:
            msg = "max_steps must be at least 1"
            raise ValueError(msg)
        self._model = model
        self._registry = registry
        self._caller = caller
        self.max_steps = max_steps
        self.parts: list[Part] = []
        self.steps = 0
        self.finish_reason: FinishReason | None = None

    def to_message(self, message_id: str) -> Message:
        """The assistant message produced so far."""
        return Message(id=message_id, role="assistant", parts=list(self.parts))

    async def run(
        self, history: list[dict[str, Any]], system: str | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Drive the loop over provider-format ``history``."""
        loop_messages = list(history)
        tool_schemas = self._registry.get_schemas()

        for step in range(self.max_steps):
            self.steps = step + 1
            yield {"type": "start-step"}

            complete: StepComplete | None = None
            text_id: str | None = None
            async for event in self._model.stream_step(
                loop_messages, system=system, tools=tool_schemas
            ):
                if isinstance(event, TextDelta):
                    if text_id is None:
                        text_id = uuid.uuid4().hex
                        yield {"type": "text-start", "id": text_id}
                    yield {"type": "text-delta", "id": text_id, "delta": event.text}
                elif isinstance(event, ToolCallStart):
                    if text_id is not None:
                        yield {"type": "text-end", "id": text_id}
                        text_id = None
                    yield {
                        "type": "tool-input-start",
                        "toolCallId": event.id,
                        "toolName": event.name,
                    }
                elif isinstance(event, ToolCallDelta):
                    yield {
                        "type": "tool-input-delta",
                        "toolCallId": event.id,
                        "inputTextDelta": event.partial_json,
                    }
                elif isinstance(event, StepComplete):
                    complete = event
            if text_id is not None:
                yield {"type": "text-end", "id": text_id}

            if complete is None:
                msg = "model stream ended without a final message"
                raise RuntimeError(msg)

            for block in complete.content:
                if block["type"] == "text" and block["text"]:
                    self.parts.append(TextPart(text=block["text"]))

            if not complete.tool_calls:
                yield {"type": "finish-step"}
                self.finish_reason = "stop"
                return

            logger.info(
                "Step %d: %d tool call(s): %s",
                self.steps,
                len(complete.tool_calls),
                ", ".join(c.name for c in complete.tool_calls),
            )
            loop_messages.append({"role": "assistant", "content": complete.content})

            tool_results: list[dict[str, Any]] = []
            for call in complete.tool_calls:
                self.parts.append(
                    ToolInvocationPart(tool_call_id=call.id, tool_name=call.name, input=call.input)
                )
                yield {
                    "type": "tool-input-available",
                    "toolCallId": call.id,
                    "toolName": call.name,
                    "input": call.input,
                }

                result = await self._registry.execute(call.name, call.input, self._caller)

                if result.success:
                    output: Any = result.data or {}
                    yield {"type": "tool-output-available", "toolCallId": call.id, "output": output}
                else:
                    output = result.error
                    yield {"type": "tool-output-error", "toolCallId": call.id, "errorText": output}
                self.parts.append(
                    ToolResultPart(
                        tool_call_id=call.id,
                        tool_name=call.name,
                        output=output,
                        is_error=not result.success,
                    )
                )
                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": call.id,
                    "content": result.to_content(),
                    "is_error": not result.success,
                })

            loop_messages.append({"role": "user", "content": tool_results})
            yield {"type": "finish-step"}

        logger.warning(
            "Hit step ceiling (%d) for thread %s", self.max_steps, self._caller.thread_id
        )
        self.finish_reason = "step-limit"
