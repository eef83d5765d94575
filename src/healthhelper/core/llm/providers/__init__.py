"""LLM provider implementations."""

from healthhelper.core.llm.providers.anthropic import AnthropicProvider
from healthhelper.core.llm.providers.mock import MockProvider
from healthhelper.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
