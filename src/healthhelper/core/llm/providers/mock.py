"""Mock LLM provider for tests and offline development."""

from __future__ import annotations

from healthhelper.core.llm.provider import ProviderResponse


class MockProvider:
    """Returns canned narrative text, or raises ``error`` when one is set."""

    def __init__(
        self,
        response_content: str = "Keep up the steady routine: sleep, water and movement.",
        error: Exception | None = None,
    ) -> None:
        self.response_content = response_content
        self.error = error
        self.last_system_message: str = ""
        self.last_user_message: str = ""
        self.call_count: int = 0

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 1500,
        temperature: float = 0.8,
    ) -> ProviderResponse:
        self.last_system_message = system_message
        self.last_user_message = user_message
        self.call_count += 1
        if self.error is not None:
            raise self.error
        return ProviderResponse(
            content=self.response_content,
            input_tokens=len(system_message.split()) + len(user_message.split()),
            output_tokens=len(self.response_content.split()),
            model="mock",
            latency_ms=0.0,
        )
