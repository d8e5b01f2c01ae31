"""
Configuration management for the personal agent.

This module provides a Settings class that loads configuration from environment
variables (prefix ``PERSONAL_AGENT_``) or a ``.env`` file, allowing easy
configuration without code changes.
"""

import re
from typing import Literal

from pydantic import PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage settings
    database_path: str = "personal_agent.db"
    notes_table: str = "memory_notes"

    # LLM settings (any OpenAI-compatible endpoint; Ollama by default)
    llm_base_url: str = "http://localhost:11434/v1"
    llm_model: str = "qwen3:8b"
    llm_api_key: str = "ollama"
    llm_temperature: float = 0.7
    llm_timeout: float = 120.0

    # Memory tool limits
    max_search_results: PositiveInt = 10
    max_list_results: PositiveInt = 50

    # Conversation loop settings
    max_tool_iterations: PositiveInt = 10
    max_history_turns: int = 20  # 0 = keep the full history
    tool_timeout: float = 30.0
    first_round_tool_choice: Literal["required", "auto"] = "required"

    # Clock tools; None = host local timezone
    timezone: str | None = None

    # Console
    exit_command: str = "quit"

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="PERSONAL_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("notes_table")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"notes_table must be a plain SQL identifier, got {value!r}")
        return value

    @field_validator("max_history_turns")
    @classmethod
    def _check_history_turns(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_history_turns must be 0 (unbounded) or positive")
        return value


def get_settings() -> Settings:
    """Get the application settings instance."""
    return Settings()
