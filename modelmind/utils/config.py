"""Application configuration.

Values come from .env and environment variables; the module-level ``settings``
instance is the default used by the server and CLI.
"""
from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_GUIDELINES_DIR = Path(__file__).resolve().parent.parent / "knowledge" / "plantuml"


class Settings(BaseSettings):
    """Runtime settings loaded from .env and environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.1
    openai_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_BASE_URL", "OPENAI_API_BASE"),
    )
    confidence_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    diagram_history_limit: int = Field(default=10, ge=1)
    history_prompt_limit: int = Field(default=5, ge=0)
    guidelines_dir: str = str(_DEFAULT_GUIDELINES_DIR)
    log_level: str = "INFO"


settings = Settings()
