"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Iridium chat configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    default_chat_model: str = Field(default="sonnet")
    default_title_model: str = Field(default="haiku")
    chat_max_tokens: int = Field(default=4096)

    # Agent loop
    max_tool_steps: int = Field(default=5, ge=1)

    # Conversation persistence
    persist_window: int = Field(default=2, ge=1)
    placeholder_title: str = Field(default="Untitled")

    # Title summarizer
    title_min_messages: int = Field(default=3)
    title_max_length: int = Field(default=100)
    title_timeout_seconds: float = Field(default=10.0)

    # Database
    database_path: Path = Field(default=Path("data/iridium.db"))

    # Sessions (written by the auth provider, read here)
    session_cookie_name: str = Field(default="better-auth.session_token")

    # Billing provider (metrics API)
    billing_api_url: str = Field(default="https://api.polar.sh")
    billing_access_token: str = Field(default="")
    billing_organization_id: str = Field(default="")
    billing_currency: str = Field(default="usd")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def billing_enabled(self) -> bool:
        """True when the billing metrics API has credentials."""
        return bool(self.billing_access_token.strip())


settings = Settings()
