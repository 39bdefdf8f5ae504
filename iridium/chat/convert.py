"""Conversion between stored UI messages and provider (Claude) messages."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from iridium.chat.models import TextPart, ToolInvocationPart, ToolResultPart

if TYPE_CHECKING:
    from collections.abc import Iterable

    from iridium.chat.models import Message


def _tool_result_block(part: ToolResultPart) -> dict[str, Any]:
    output = part.output
    content = output if isinstance(output, str) else json.dumps(output)
    return {
        "type": "tool_result",
        "tool_use_id": part.tool_call_id,
        "content": content,
        "is_error": part.is_error,
    }


def _append(turns: list[dict[str, Any]], role: str, blocks: list[dict[str, Any]]) -> None:
    """Append a turn, merging into the previous one when the role repeats."""
    if not blocks:
        return
    if turns and turns[-1]["role"] == role:
        turns[-1]["content"].extend(blocks)
    else:
        turns.append({"role": role, "content": list(blocks)})


def _drop_orphan_tool_calls(turns: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Remove tool_use blocks that have no tool_result in the next turn.

    An interrupted turn can leave an invocation without a result, which the
    provider rejects.
    """
    cleaned: list[dict[str, Any]] = []
    for i, turn in enumerate(turns):
        if turn["role"] == "assistant":
            nxt = turns[i + 1] if i + 1 < len(turns) else None
            answered = {
                b["tool_use_id"]
                for b in (nxt["content"] if nxt and nxt["role"] == "user" else [])
                if b.get("type") == "tool_result"
            }
            content = [
                b for b in turn["content"] if b["type"] != "tool_use" or b["id"] in answered
            ]
            if not content:
                continue
            turn = {"role": "assistant", "content": content}
        if cleaned and cleaned[-1]["role"] == turn["role"]:
            cleaned[-1]["content"].extend(turn["content"])
        else:
            cleaned.append(turn)
    return cleaned


def to_model_messages(messages: Iterable[Message]) -> tuple[str, list[dict[str, Any]]]:
    """Convert UI messages to ``(system_text, provider_messages)``.

    Assistant messages that span several tool steps are split: text and
    tool invocations become assistant turns, and each run of tool results
    becomes the user turn that follows. System messages are folded into the
    returned system text.
    """
    system: list[str] = []
    turns: list[dict[str, Any]] = []

    for message in messages:
        if message.role == "system":
            if message.text:
                system.append(message.text)
            continue

        if message.role == "user":
            blocks = [
                {"type": "text", "text": p.text}
                for p in message.parts
                if isinstance(p, TextPart) and p.text
            ]
            _append(turns, "user", blocks)
            continue

        pending: list[dict[str, Any]] = []
        results: list[dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, ToolResultPart):
                if pending:
                    _append(turns, "assistant", pending)
                    pending = []
                results.append(_tool_result_block(part))
                continue
            if results:
                _append(turns, "user", results)
                results = []
            if isinstance(part, TextPart):
                if part.text:
                    pending.append({"type": "text", "text": part.text})
            elif isinstance(part, ToolInvocationPart):
                pending.append({
                    "type": "tool_use",
                    "id": part.tool_call_id,
                    "name": part.tool_name,
                    "input": part.input,
                })
        _append(turns, "assistant", pending)
        _append(turns, "user", results)

    return "\n\n".join(system), _drop_orphan_tool_calls(turns)
