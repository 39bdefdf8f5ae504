"""Tests for UI message to provider message conversion."""

from iridium.chat.convert import to_model_messages
from iridium.chat.models import Message, TextPart, ToolInvocationPart, ToolResultPart


def _user(msg_id: str, text: str) -> Message:
    return Message(id=msg_id, role="user", parts=[TextPart(text=text)])


def test_plain_conversation() -> None:
    system, turns = to_model_messages([
        _user("m1", "hi"),
        Message(id="m2", role="assistant", parts=[TextPart(text="hello")]),
        _user("m3", "revenue?"),
    ])
    assert system == ""
    assert [t["role"] for t in turns] == ["user", "assistant", "user"]
    assert turns[2]["content"] == [{"type": "text", "text": "revenue?"}]


def test_system_messages_are_folded() -> None:
    system, turns = to_model_messages([
        Message(id="s1", role="system", parts=[TextPart(text="Be brief.")]),
        _user("m1", "hi"),
    ])
    assert system == "Be brief."
    assert len(turns) == 1


def test_tool_steps_split_into_turns() -> None:
    assistant = Message(
        id="m2",
        role="assistant",
        parts=[
            TextPart(text="Let me check."),
            ToolInvocationPart(tool_call_id="c1", tool_name="get_revenue_metrics", input={}),
            ToolResultPart(
                tool_call_id="c1", tool_name="get_revenue_metrics", output={"revenue": 123456}
            ),
            TextPart(text="Revenue was $1,234.56."),
        ],
    )
    _, turns = to_model_messages([_user("m1", "revenue?"), assistant])

    assert [t["role"] for t in turns] == ["user", "assistant", "user", "assistant"]
    assert turns[1]["content"][1] == {
        "type": "tool_use",
        "id": "c1",
        "name": "get_revenue_metrics",
        "input": {},
    }
    result = turns[2]["content"][0]
    assert result["type"] == "tool_result"
    assert result["tool_use_id"] == "c1"
    assert result["content"] == '{"revenue": 123456}'
    assert turns[3]["content"] == [{"type": "text", "text": "Revenue was $1,234.56."}]


def test_trailing_tool_result_merges_with_next_user_turn() -> None:
    assistant = Message(
        id="m2",
        role="assistant",
        parts=[
            ToolInvocationPart(tool_call_id="c1", tool_name="list_notes"),
            ToolResultPart(tool_call_id="c1", tool_name="list_notes", output={"notes": []}),
        ],
    )
    _, turns = to_model_messages([_user("m1", "notes?"), assistant, _user("m3", "thanks")])

    assert [t["role"] for t in turns] == ["user", "assistant", "user"]
    assert turns[2]["content"][0]["type"] == "tool_result"
    assert turns[2]["content"][1] == {"type": "text", "text": "thanks"}


def test_error_results_keep_flag_and_text() -> None:
    assistant = Message(
        id="m2",
        role="assistant",
        parts=[
            ToolInvocationPart(tool_call_id="c1", tool_name="get_revenue_metrics"),
            ToolResultPart(
                tool_call_id="c1",
                tool_name="get_revenue_metrics",
                output="billing is unavailable",
                is_error=True,
            ),
        ],
    )
    _, turns = to_model_messages([_user("m1", "revenue?"), assistant])
    block = turns[2]["content"][0]
    assert block["is_error"] is True
    assert block["content"] == "billing is unavailable"


def test_orphan_tool_call_is_dropped() -> None:
    assistant = Message(
        id="m2",
        role="assistant",
        parts=[
            TextPart(text="Checking"),
            ToolInvocationPart(tool_call_id="c1", tool_name="list_notes"),
        ],
    )
    _, turns = to_model_messages([_user("m1", "notes?"), assistant, _user("m3", "hello?")])

    assert [t["role"] for t in turns] == ["user", "assistant", "user"]
    assert turns[1]["content"] == [{"type": "text", "text": "Checking"}]


def test_assistant_turn_with_only_orphan_call_removed() -> None:
    assistant = Message(
        id="m2",
        role="assistant",
        parts=[ToolInvocationPart(tool_call_id="c1", tool_name="list_notes")],
    )
    _, turns = to_model_messages([_user("m1", "a"), assistant, _user("m3", "b")])

    assert len(turns) == 1
    assert turns[0]["content"] == [
        {"type": "text", "text": "a"},
        {"type": "text", "text": "b"},
    ]
