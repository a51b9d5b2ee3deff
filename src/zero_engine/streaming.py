"""Pure reduction of a streamed response into renderable state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from zero_engine.parsing import ParsedResponse, parse_response
from zero_engine.provider import StreamChunk
from zero_engine.sessions.models import Citation, Message


@dataclass(frozen=True)
class StreamState:
    text: str = ""
    citations: list[Citation] = field(default_factory=list)
    parsed: ParsedResponse = field(default_factory=ParsedResponse)
    chunk_count: int = 0


def apply_chunk(state: StreamState, chunk: StreamChunk) -> StreamState:
    text = state.text + chunk.text
    # A chunk that carries grounding metadata replaces the citation list.
    citations = list(chunk.citations) if chunk.citations is not None else state.citations
    return StreamState(
        text=text,
        citations=citations,
        parsed=parse_response(text),
        chunk_count=state.chunk_count + 1,
    )


def message_from_state(message: Message, state: StreamState) -> Message:
    return replace(
        message,
        content=state.text,
        citations=list(state.citations),
        parsed_data=state.parsed,
    )
