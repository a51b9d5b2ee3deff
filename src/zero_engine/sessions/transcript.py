from __future__ import annotations

from datetime import UTC, datetime

from zero_engine.sessions.models import Message

MESSAGE_SEPARATOR = "\n\n====================\n\n"


def render_message_block(message: Message) -> str:
    block = f"[{message.author.upper()}]\n{message.content}"
    if message.citations:
        lines = "\n".join(f"- {c.title}: {c.uri}" for c in message.citations)
        block += f"\n\n[CITATIONS]\n{lines}"
    if message.translation is not None:
        block += f"\n\n[TRANSLATION ({message.translation.lang})]\n{message.translation.content}"
    return block


def render_transcript(messages: list[Message]) -> str:
    return MESSAGE_SEPARATOR.join(render_message_block(m) for m in messages)


def transcript_filename(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    stamp = moment.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return f"zero-engine-log-{stamp}.txt"
