"""Shared test fixtures."""

from pathlib import Path

import pytest

from iridium.notes.store import NoteStore
from iridium.threads.store import ThreadStore


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """A fresh SQLite file per test."""
    return tmp_path / "iridium.db"


@pytest.fixture
def threads(db_path: Path) -> ThreadStore:
    return ThreadStore(db_path=db_path, placeholder_title="Untitled")


@pytest.fixture
def notes(db_path: Path) -> NoteStore:
    return NoteStore(db_path=db_path)
