from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from zero_engine.sessions.models import Citation, ExchangeTurn


@dataclass(frozen=True)
class StreamChunk:
    text: str = ""
    # None when the chunk carries no grounding metadata at all.
    citations: list[Citation] | None = None


@runtime_checkable
class LLMProvider(Protocol):
    def stream_chat(
        self,
        model: str,
        history: list[ExchangeTurn],
        parts: list[dict],
        *,
        search_grounding: bool = False,
    ) -> AsyncIterator[StreamChunk]:
        """Send one user turn on top of ``history`` and stream the reply.

        ``parts`` are ``{"text": ...}`` and ``{"inline_data": {...}}`` dicts,
        the same shape stored in a session's exchange history.
        """
        ...

    async def create_message(self, model: str, prompt: str) -> str:
        """Single-turn, non-streaming completion (used for translation)."""
        ...


def create_provider(
    provider_name: str,
    api_key: str,
    *,
    max_tokens: int = 8192,
    temperature: float = 1.0,
) -> LLMProvider:
    """Factory: create an LLMProvider by name."""
    name = provider_name.strip().lower()
    if name == "gemini":
        from zero_engine.providers.gemini_provider import GeminiProvider
        return GeminiProvider(api_key, max_tokens=max_tokens, temperature=temperature)
    if name == "anthropic":
        from zero_engine.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key, max_tokens=max_tokens, temperature=temperature)
    if name == "openai":
        from zero_engine.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, max_tokens=max_tokens, temperature=temperature)
    raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'gemini', 'anthropic', 'openai'")
