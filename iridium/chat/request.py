"""Request parser for ``POST /api/chat``."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from iridium.chat.models import PART_TYPES, Message
from iridium.errors import ValidationError


class ChatRequest(BaseModel):
    """A validated chat turn: thread ID plus the client's ordered messages."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    messages: list[Message]

    def latest_user_message(self) -> Message:
        """Return the newest user-authored message.

        Raises:
            ValidationError: No user message in the request (including an
                empty ``messages`` list), or the newest one has no text.
        """
        for message in reversed(self.messages):
            if message.role == "user":
                if not message.text.strip():
                    raise ValidationError("messages", "Latest user message has no text")
                return message
        raise ValidationError("messages", "No user message found in request")


def _field_path(loc: tuple[Any, ...]) -> str:
    parts = []
    for i, p in enumerate(loc):
        # Skip the discriminator tag pydantic inserts after a part index.
        if i >= 2 and loc[i - 2] == "parts" and isinstance(loc[i - 1], int) and p in PART_TYPES:
            continue
        parts.append(str(p))
    return ".".join(parts) or "body"


def parse_chat_request(body: Any) -> ChatRequest:
    """Validate an already-decoded JSON body.

    Raises:
        ValidationError: Naming the first offending field as a dotted path,
            e.g. ``id`` or ``messages.0.role``.
    """
    if not isinstance(body, dict):
        raise ValidationError("body", "Request body must be a JSON object")
    try:
        return ChatRequest.model_validate(body)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        raise ValidationError(_field_path(first["loc"]), first["msg"]) from exc
