"""LLM client implementations."""

from typing import Protocol

from roof_insights.clients.claude import ClaudeClient, CompletionResponse
from roof_insights.clients.openai_client import OpenAIClient


class CompletionClient(Protocol):
    """Anything that can turn a system + user prompt into text."""

    async def complete(
        self, system_prompt: str, user_prompt: str, max_tokens: int | None = None
    ) -> CompletionResponse: ...


__all__ = ["ClaudeClient", "CompletionClient", "CompletionResponse", "OpenAIClient"]
