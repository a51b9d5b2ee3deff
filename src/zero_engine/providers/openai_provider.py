from __future__ import annotations

from collections.abc import AsyncIterator

import openai
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
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
)


def _to_openai_content(parts: list[dict]) -> str | list[dict]:
    """Plain string for text-only turns, content-part list otherwise."""
    if all(part_inline_data(p) is None for p in parts):
        return "\n".join(t for t in (part_text(p) for p in parts) if t)

    content: list[dict] = []
    for part in parts:
        inline = part_inline_data(part)
        if inline is None:
            text = part_text(part)
            if text:
                content.append({"type": "text", "text": text})
            continue
        mime_type, data = inline
        if mime_type.startswith("image/"):
            content.append({"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{data}"}})
        else:
            content.append({"type": "text", "text": unsupported_attachment_note(mime_type)})
    return content


def _to_openai_messages(history: list[ExchangeTurn], parts: list[dict]) -> list[dict]:
    out: list[dict] = []
    for turn in history:
        role = chat_role(turn.role)
        content = _to_openai_content(turn.parts)
        if role == "assistant" and not isinstance(content, str):
            # Assistant turns only carry text.
            content = "\n".join(p["text"] for p in content if p.get("type") == "text")
        out.append({"role": role, "content": content})
    out.append({"role": "user", "content": _to_openai_content(parts)})
    return out


class OpenAIProvider:
    def __init__(self, api_key: str, *, max_tokens: int = 8192, temperature: float = 1.0):
        self._client = openai.AsyncOpenAI(api_key=api_key)
        self._max_tokens = max_tokens
        self._temperature = temperature

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def _open_stream(self, model: str, messages: list[dict]):
        return await self._client.chat.completions.create(
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
            logger.debug("Search grounding is not available for the openai provider; ignoring")
        messages = _to_openai_messages(history, parts)
        logger.debug(f"API request: model={model}, max_tokens={self._max_tokens}, messages={len(messages)}")
        stream = await self._open_stream(model, messages)
        finish_reason: str | None = None
        async for chunk in stream:
            choice = chunk.choices[0] if chunk.choices else None
            if choice is None:
                continue
            if choice.finish_reason:
                finish_reason = choice.finish_reason
            delta = choice.delta
            if delta is not None and delta.content:
                yield StreamChunk(text=delta.content)
        logger.debug(f"API response: model={model}, finish_reason={finish_reason}")

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def create_message(self, model: str, prompt: str) -> str:
        logger.debug(f"Single-turn API request: model={model}, prompt_len={len(prompt)}")
        response = await self._client.chat.completions.create(
            model=model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        text = response.choices[0].message.content or ""
        logger.debug(f"Single-turn API response: len={len(text)}")
        return text
