"""Tests for Settings configuration model."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from iridium.config import Settings


class TestDefaults:
    def test_agent_loop_defaults(self):
        s = Settings()
        assert s.max_tool_steps == 5
        assert s.persist_window == 2

    def test_title_defaults(self):
        s = Settings()
        assert s.placeholder_title == "Untitled"
        assert s.title_min_messages == 3
        assert s.title_max_length == 100

    def test_database_path_is_path(self):
        s = Settings(database_path="/tmp/x.db")
        assert s.database_path == Path("/tmp/x.db")


class TestValidation:
    def test_max_tool_steps_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(max_tool_steps=0)

    def test_persist_window_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(persist_window=0)


class TestBillingEnabled:
    def test_disabled_without_token(self):
        assert Settings(billing_access_token="").billing_enabled is False

    def test_whitespace_token_is_disabled(self):
        assert Settings(billing_access_token="   ").billing_enabled is False

    def test_enabled_with_token(self):
        assert Settings(billing_access_token="polar_oat_123").billing_enabled is True


def test_environment_ignored_under_pytest(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MAX_TOOL_STEPS", "9")
    assert Settings().max_tool_steps == 5
