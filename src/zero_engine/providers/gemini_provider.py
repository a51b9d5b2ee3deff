from __future__ import annotations

import base64
from collections.abc import AsyncIterator

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from loguru import logger
from tenacity import retry

from zero_engine.provider import StreamChunk
from zero_engine.providers.common import default_retry_kwargs, part_inline_data, part_text
from zero_engine.sessions.models import Citation, ExchangeTurn

_RETRYABLE = (genai_errors.ServerError,)


def _to_gemini_part(part: dict) -> types.Part:
    inline = part_inline_data(part)
    if inline is not None:
        mime_type, data = inline
        return types.Part.from_bytes(data=base64.b64decode(data), mime_type=mime_type)
    return types.Part.from_text(text=part_text(part) or "")


def _to_gemini_contents(history: list[ExchangeTurn], parts: list[dict]) -> list[types.Content]:
    contents = [
        types.Content(role=turn.role, parts=[_to_gemini_part(p) for p in turn.parts])
        for turn in history
    ]
    contents.append(types.Content(role="user", parts=[_to_gemini_part(p) for p in parts]))
    return contents


def _extract_citations(chunk) -> list[Citation] | None:
    """Citations from a chunk's grounding metadata, or None when it has none."""
    candidates = getattr(chunk, "candidates", None) or []
    if not candidates:
        return None
    metadata = getattr(candidates[0], "grounding_metadata", None)
    grounding_chunks = getattr(metadata, "grounding_chunks", None) if metadata else None
    if grounding_chunks is None:
        return None
    citations: list[Citation] = []
    for grounding_chunk in grounding_chunks:
        web = getattr(grounding_chunk, "web", None)
        if web is not None and web.uri and web.title:
            citations.append(Citation(uri=web.uri, title=web.title))
    return citations


class GeminiProvider:
    def __init__(self, api_key: str, *, max_tokens: int = 8192, temperature: float = 1.0):
        self._client = genai.Client(api_key=api_key)
        self._max_tokens = max_tokens
        self._temperature = temperature

    def _config(self, search_grounding: bool) -> types.GenerateContentConfig:
        tools = [types.Tool(google_search=types.GoogleSearch())] if search_grounding else None
        return types.GenerateContentConfig(
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            tools=tools,
        )

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def _open_stream(self, model: str, contents: list[types.Content], search_grounding: bool):
        return await self._client.aio.models.generate_content_stream(
            model=model,
            contents=contents,
            config=self._config(search_grounding),
        )

    async def stream_chat(
        self,
        model: str,
        history: list[ExchangeTurn],
        parts: list[dict],
        *,
        search_grounding: bool = False,
    ) -> AsyncIterator[StreamChunk]:
        contents = _to_gemini_contents(history, parts)
        logger.debug(
            f"API request: model={model}, history={len(history)}, parts={len(parts)}, "
            f"search_grounding={search_grounding}"
        )
        stream = await self._open_stream(model, contents, search_grounding)
        total_chars = 0
        async for chunk in stream:
            text = chunk.text or ""
            total_chars += len(text)
            yield StreamChunk(text=text, citations=_extract_citations(chunk))
        logger.debug(f"API response: model={model}, text_len={total_chars}")

    @retry(**default_retry_kwargs(_RETRYABLE))
    async def create_message(self, model: str, prompt: str) -> str:
        logger.debug(f"Single-turn API request: model={model}, prompt_len={len(prompt)}")
        response = await self._client.aio.models.generate_content(model=model, contents=prompt)
        text = response.text or ""
        logger.debug(f"Single-turn API response: len={len(text)}")
        return text
