"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class ConfigurationError(Exception):
    """Raised when required configuration is missing or unusable."""


class Settings(BaseSettings):
    """HealthHelper configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; there is no auth layer in front of the tools.
    hh_host: str = "127.0.0.1"
    hh_port: int = 8010
    hh_log_level: str = "info"
    hh_allow_insecure_bind: bool = False

    # Storage
    db_path: str = "~/.healthhelper/healthhelper.db"

    # Narrative generation
    # 'llm' calls the configured provider and fails hard when it is unavailable.
    # 'local' uses the offline rule-based analysis instead.
    narrative_source: Literal["llm", "local"] = "llm"
    narrative_timeout_seconds: float = 30.0
    narrative_max_tokens: int = 1500
    narrative_temperature: float = 0.8

    # LLM provider
    llm_provider: Literal["anthropic", "openai", "mock"] = "openai"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    # Set for OpenAI-compatible endpoints, e.g. https://api.deepseek.com
    openai_base_url: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
