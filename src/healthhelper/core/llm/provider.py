"""LLM provider protocol: abstract interface for narrative generation calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from healthhelper.core.config.settings import ConfigurationError


@dataclass
class ProviderResponse:
    """Response from an LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for LLM calls."""

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 1500,
        temperature: float = 0.8,
    ) -> ProviderResponse: ...


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    base_url: str = "",
) -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "anthropic", "openai", or "mock"
        api_key: API key for the provider. Required for real providers.
        model: Model identifier override.
        base_url: Endpoint override for OpenAI-compatible APIs.

    Raises:
        ConfigurationError: Unknown provider, or a real provider without a key.
    """
    if provider_name == "mock":
        from healthhelper.core.llm.providers.mock import MockProvider

        return MockProvider()

    if provider_name not in ("anthropic", "openai"):
        raise ConfigurationError(f"Unknown LLM provider: {provider_name}")
    if not api_key:
        raise ConfigurationError(
            f"No API key configured for LLM provider '{provider_name}'. "
            "Set the key or choose NARRATIVE_SOURCE=local explicitly."
        )

    if provider_name == "anthropic":
        from healthhelper.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model or "claude-sonnet-4-20250514")

    from healthhelper.core.llm.providers.openai import OpenAIProvider

    return OpenAIProvider(api_key=api_key, model=model or "gpt-4o", base_url=base_url or None)
