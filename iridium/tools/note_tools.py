"""Note tools — create, list and search the caller's notes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field

from iridium.tools.base import BaseTool, CallerContext, ToolParams, ToolResult

if TYPE_CHECKING:
    from iridium.notes.store import NoteStore


class CreateNoteParams(ToolParams):
    title: str = Field(min_length=1, max_length=200, description="A short title for the note")
    content: str = Field(description="The body content of the note")


class SearchNotesParams(ToolParams):
    query: str = Field(
        min_length=1,
        description="Search term to match against note titles and content",
    )


class _NoteTool(BaseTool):
    category = "notes"

    def __init__(self, notes: NoteStore) -> None:
        self._notes = notes


class CreateNoteTool(_NoteTool):
    name = "create_note"
    description = (
        "Create a new note for the user. Use when the user asks to save, remember, "
        "or jot down something."
    )
    params_model = CreateNoteParams

    async def execute(self, caller: CallerContext, title: str, content: str) -> ToolResult:
        note = await self._notes.create_note(caller.user_id, title, content)
        return ToolResult(data=note.to_dict())


class ListNotesTool(_NoteTool):
    name = "list_notes"
    description = "List all notes for the current user. Use when the user wants to see their notes."

    async def execute(self, caller: CallerContext) -> ToolResult:
        notes = await self._notes.list_notes(caller.user_id)
        return ToolResult(data={"notes": [n.to_dict() for n in notes]})


class SearchNotesTool(_NoteTool):
    name = "search_notes"
    description = (
        "Search the user's notes by keyword. Use when the user wants to find a specific note."
    )
    params_model = SearchNotesParams

    async def execute(self, caller: CallerContext, query: str) -> ToolResult:
        notes = await self._notes.search_notes(caller.user_id, query)
        return ToolResult(data={"notes": [n.to_dict() for n in notes]})


def note_tools(notes: NoteStore) -> list[BaseTool]:
    return [CreateNoteTool(notes), ListNotesTool(notes), SearchNotesTool(notes)]
