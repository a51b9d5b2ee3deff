from __future__ import annotations

from collections.abc import AsyncIterator

import anthropic
from loguru import logger
from tenacity import retry

from zero_engine.provider import StreamChunk
from zero_engine.providers.common import (
    chat_role,
    default_retry_kwargs,
    part_inline_data,
    part_text,
    unsupported_attachment_note,
)
from zero_engine.sessions.models import ExchangeTurn

_RETRYABLE = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.APITimeoutError,
)


def _to_anthropic_block(part: dict) -> dict | None:
    inline = part_inline_data(part)
    if inline is not None:
        mime_type, data = inline
        source = {"type": "base64", "media_type": mime_type, "data": data}
        if mime_type.startswith("image/"):
            return {"type": "image", "source": source}
        if mime_type == "application/pdf":
            return {"type": "document", "source": source}
        return {"type": "text", "text": unsupported_attachment_note(mime_type)}
    text = part_text(part)
    if not text:
        return None
    return {"type": "text", "text": text}


def _to_anthropic_messages(history: list[ExchangeTurn], parts: list[dict]) -> list[dict]:
    """Convert exchange history plus the new user turn to Messages API format."""
    turns = [(turn.role, turn.parts) for turn in history]
    turns.append(("user", parts))
    out: list[dict] = []
    for role, turn_parts in turns:
        blocks = [b for b in (_to_anthropic_block(p) for p in turn_parts) if b is not None]
        if not blocks:
            continue
        out.append({"role": chat_role(role), "content": blocks})
    return out


class AnthropicProvider:
    def __init__(self, api_key: str, *, max_tokens: int = 8192, temperature: float = 1.0):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._max_tokens = max_tokens
        self._temperature = temperature

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def _open_stream(self, model: str, messages: list[dict]):
        return await self._client.messages.create(
            model=model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=messages,
            stream=True,
        )

    async def stream_chat(
        self,
        model: str,
        history: list[ExchangeTurn],
        parts: list[dict],
        *,
        search_grounding: bool = False,
    ) -> AsyncIterator[StreamChunk]:
        if search_grounding:
            logger.debug("Search grounding is not available for the anthropic provider; ignoring")
        messages = _to_anthropic_messages(history, parts)
        logger.debug(f"API request: model={model}, max_tokens={self._max_tokens}, messages={len(messages)}")
        stream = await self._open_stream(model, messages)
        stop_reason: str | None = None
        async for event in stream:
            if event.type == "content_block_delta" and event.delta.type == "text_delta":
                yield StreamChunk(text=event.delta.text)
            elif event.type == "message_delta":
                stop_reason = getattr(event.delta, "stop_reason", None)
        logger.debug(f"API response: model={model}, stop_reason={stop_reason}")

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def create_message(self, model: str, prompt: str) -> str:
        logger.debug(f"Single-turn API request: model={model}, prompt_len={len(prompt)}")
        response = await self._client.messages.create(
            model=model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        usage = response.usage
        logger.debug(
            f"Single-turn API response: input_tokens={usage.input_tokens}, "
            f"output_tokens={usage.output_tokens}"
        )
        return "".join(block.text for block in response.content if block.type == "text")
