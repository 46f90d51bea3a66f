"""Configuration loading from environment variables with validation."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Anchor .env lookup to the project root (two levels up from this file)
_PROJECT_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STITCH_",
        case_sensitive=False,
    )

    # Anthropic (loaded separately, no prefix)
    anthropic_api_key: str = ""

    # Model settings
    model: str = "claude-sonnet-4-20250514"
    available_models: list[str] = [
        "claude-sonnet-4-20250514",
        "claude-opus-4-20250514",
        "claude-3-5-haiku-20241022",
    ]
    max_tokens: int = 4096
    temperature: float = 0.7

    # Continuation protocol
    max_rounds: int = 3
    end_mark: str = "<|endofresponse|>"

    # Logging
    log_level: str = "INFO"

    @field_validator("max_rounds")
    @classmethod
    def _positive_rounds(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_rounds must be at least 1")
        return value

    @field_validator("end_mark")
    @classmethod
    def _non_empty_mark(cls, value: str) -> str:
        if not value:
            raise ValueError("end_mark must not be empty")
        return value

    @property
    def model_ids(self) -> list[str]:
        """Configured models with the default model first."""
        ids = [self.model]
        ids.extend(m for m in self.available_models if m != self.model)
        return ids


def get_settings() -> Settings:
    """Load settings from environment and .env file."""
    load_dotenv(_PROJECT_DIR / ".env")
    api_key = os.getenv("ANTHROPIC_API_KEY", "")
    return Settings(anthropic_api_key=api_key)
