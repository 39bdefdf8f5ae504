"""System prompt assembly for the chat assistant and the title summarizer."""

from datetime import date

BASE_PROMPT = """\
You are the in-app assistant of a SaaS dashboard. You help the signed-in user \
understand their business metrics and manage their notes.

- Use the available tools to look up figures; never invent numbers.
- Money amounts in tool results are integer minor units (cents). Quote the \
matching entry from the result's `display` map rather than converting yourself.
- Dates are YYYY-MM-DD. Resolve relative periods ("this month", "last quarter") \
against today's date before calling a tool.
- Keep answers short and lead with the number the user asked for."""

TITLE_PROMPT = """\
Generate a concise, descriptive title (max 6 words) for this conversation. \
The title should capture the main topic or question being discussed.

Conversation:
{conversation}

Generate only the title, no quotes or extra text."""


def build_system_prompt(today: date | None = None, extra: str = "") -> str:
    """Assemble the chat system prompt.

    Args:
        today: Date the assistant should treat as "today".
        extra: System-role message text from the conversation, appended last.
    """
    today = today or date.today()
    sections = [BASE_PROMPT, f"Today's date is {today.isoformat()}."]
    if extra.strip():
        sections.append(extra.strip())
    return "\n\n".join(sections)


def build_title_prompt(conversation: str) -> str:
    return TITLE_PROMPT.format(conversation=conversation)
