from __future__ import annotations

import sys
import threading
import time

from zero_engine.parsing import Section, extract_c4_score, parse_response
from zero_engine.sessions.models import Message

MAX_RENDERED_MESSAGES = 50
GAUGE_WIDTH = 20

_SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


class Spinner:
    """Status line with elapsed seconds, redrawn in place with \\r.

    Usable as a context manager; ``stop`` is idempotent so a streaming
    callback may stop it early.
    """

    def __init__(self, prefix: str = "", label: str = " Processing..."):
        self._prefix = prefix
        self._label = label
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._drawn_width = 0

    def __enter__(self) -> Spinner:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        if self._thread:
            self._thread.join()
        sys.stdout.write("\r" + self._prefix + " " * self._drawn_width + "\r" + self._prefix)
        sys.stdout.flush()

    def _run(self) -> None:
        started = time.monotonic()
        i = 0
        try:
            while not self._stop.is_set():
                elapsed = int(time.monotonic() - started)
                frame = f"{_SPINNER_FRAMES[i % len(_SPINNER_FRAMES)]}{self._label} {elapsed}s"
                self._drawn_width = max(self._drawn_width, len(frame))
                sys.stdout.write("\r" + self._prefix + frame)
                sys.stdout.flush()
                self._stop.wait(0.08)
                i += 1
        except (UnicodeEncodeError, OSError):
            return


def c4_gauge(score: float, width: int = GAUGE_WIDTH) -> str:
    clamped = min(max(score, 0.0), 1.0)
    filled = round(clamped * width)
    return f"[{'#' * filled}{'.' * (width - filled)}] {score:.2f}"


def render_section(section: Section) -> str:
    header = f"-- {section.title} --"
    if "c4 score" in section.title.lower():
        return f"{header}\n{c4_gauge(extract_c4_score(section))}\n{section.content}"
    return f"{header}\n{section.content}"


def render_citations(message: Message) -> str:
    if not message.citations:
        return ""
    lines = "\n".join(f"- {c.title} <{c.uri}>" for c in message.citations)
    return f"-- Citations --\n{lines}"


def render_translation(message: Message) -> str:
    if message.is_translating:
        return "Translating..."
    if message.translation is None:
        return ""
    return f"-- Translated Output ({message.translation.lang}) --\n{message.translation.content}"


def render_ai_message(message: Message) -> str:
    parsed = message.parsed_data or parse_response(message.content)
    blocks = [render_section(s) for s in parsed.sections]
    blocks.append(render_translation(message))
    blocks.append(render_citations(message))
    return "\n\n".join(b for b in blocks if b)


def render_user_message(message: Message) -> str:
    text = message.content
    if message.attachment is not None:
        note = f"[attached: {message.attachment.name}, {message.attachment.mime_type}, {message.attachment.size} bytes]"
        text = f"{text}\n{note}" if text else note
    return text


def render_message(message: Message, *, user_prefix: str, ai_prefix: str) -> str:
    if message.author == "user":
        return f"{user_prefix}{render_user_message(message)}"
    return f"{ai_prefix}#{message.id}\n{render_ai_message(message)}"


def render_history(
    messages: list[Message],
    *,
    user_prefix: str,
    ai_prefix: str,
    max_messages: int = MAX_RENDERED_MESSAGES,
) -> list[str]:
    """Render the tail of a conversation, at most ``max_messages`` entries."""
    blocks: list[str] = []
    hidden = len(messages) - max_messages
    if hidden > 0:
        blocks.append(f"... {hidden} earlier message(s) not shown. Use /export for the full log.")
        messages = messages[-max_messages:]
    blocks.extend(render_message(m, user_prefix=user_prefix, ai_prefix=ai_prefix) for m in messages)
    return blocks


def render_turn_footer(message: Message) -> str:
    """Gauge and citations, printed after the raw text has been streamed."""
    blocks: list[str] = []
    parsed = message.parsed_data or parse_response(message.content)
    for section in parsed.sections:
        if "c4 score" in section.title.lower():
            blocks.append(f"C4 {c4_gauge(extract_c4_score(section))}")
            break
    citations = render_citations(message)
    if citations:
        blocks.append(citations)
    return "\n\n".join(blocks)
