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
    """Assistant configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    chat_model: str = Field(default="claude-sonnet-4-5-20250929")
    tool_model: str = Field(default="claude-haiku-4-5-20251001")
    llm_timeout_seconds: float = Field(default=60.0)

    # Database
    database_path: Path = Field(default=Path("data/aguwai.db"))

    # Job portal (job listings and uploaded documents)
    portal_base_url: str = Field(default="http://localhost:5000")
    portal_api_token: str = Field(default="")
    repository_timeout_seconds: float = Field(default=20.0)

    # Orchestration
    max_tool_hops: int = Field(default=6, ge=1)
    tool_timeout_seconds: float = Field(default=90.0)
    checkpoints_enabled: bool = Field(default=True)

    # Memory retention
    thread_ttl_hours: int = Field(default=24)
    session_ttl_hours: int = Field(default=24)
    resume_history_limit: int = Field(default=10, ge=1)
    search_history_limit: int = Field(default=20, ge=1)
    interview_history_limit: int = Field(default=10, ge=1)
    event_retention_days: int = Field(default=30)
    checkpoint_retention_days: int = Field(default=7)
    cleanup_interval_hours: float = Field(default=6.0)

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


settings = Settings()
