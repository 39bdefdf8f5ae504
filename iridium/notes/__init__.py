"""User notes, readable and writable by the chat assistant's tools."""

from iridium.notes.store import Note, NoteStore

__all__ = ["Note", "NoteStore"]
