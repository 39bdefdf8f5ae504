"""Conversation data model: messages, typed parts and threads."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant", "system"]

PART_TYPES = frozenset({"text", "tool-invocation", "tool-result"})


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python. Extra fields are ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TextPart(_WireModel):
    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(_WireModel):
    """The model asked for a tool to be run."""

    type: Literal["tool-invocation"] = "tool-invocation"
    tool_call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(_WireModel):
    """Outcome of a tool invocation, success or error."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    output: Any = None
    is_error: bool = False


def make_message_id() -> str:
    """Generate a new message ID."""
    return f"msg_{uuid.uuid4().hex}"


Part = Annotated[TextPart | ToolInvocationPart | ToolResultPart, Field(discriminator="type")]


class Message(_WireModel):
    """A single conversation turn made of typed parts."""

    id: str = Field(default_factory=make_message_id, min_length=1)
    role: Role
    parts: list[Part] = Field(default_factory=list)
    created_at: str | None = None

    @field_validator("parts", mode="before")
    @classmethod
    def _drop_unknown_parts(cls, value: Any) -> Any:
        # Clients interleave rendering hints (e.g. "step-start"); only the
        # three content part types are part of the conversation.
        if isinstance(value, list):
            return [p for p in value if not isinstance(p, dict) or p.get("type") in PART_TYPES]
        return value

    @property
    def text(self) -> str:
        """All text parts joined with spaces."""
        return " ".join(p.text for p in self.parts if isinstance(p, TextPart))

    def parts_json(self) -> str:
        """Serialize parts for the ``messages.content`` column."""
        return json.dumps([p.model_dump(mode="json", by_alias=True) for p in self.parts])

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass
class Thread:
    """A conversation owned by one user.

    Attributes:
        id: Thread identifier (client-chosen or UUID hex).
        created_by: Owner user ID.
        title: Display title; the placeholder until summarized or renamed.
        created_at: ISO 8601 timestamp.
        updated_at: ISO 8601 timestamp of the last change.
        messages: Messages ordered by creation.
    """

    id: str
    created_by: str
    title: str
    created_at: str
    updated_at: str
    messages: list[Message] = field(default_factory=list)

    def to_wire(self, *, include_messages: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "createdById": self.created_by,
            "title": self.title,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if include_messages:
            data["messages"] = [m.to_wire() for m in self.messages]
        return data
