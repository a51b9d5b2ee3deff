from __future__ import annotations

from loguru import logger
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

_MAX_ATTEMPTS = 3


def _on_retry(retry_state) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying in {wait:.0f}s (attempt {attempt}/{_MAX_ATTEMPTS})...")


def default_retry_kwargs(exception_types: tuple[type[Exception], ...]) -> dict:
    """Retry policy for opening a model call; a stream in progress is never retried."""
    return {
        "retry": retry_if_exception_type(exception_types),
        "wait": wait_exponential(multiplier=2, min=2, max=30),
        "stop": stop_after_attempt(_MAX_ATTEMPTS),
        "before_sleep": _on_retry,
        "reraise": True,
    }


def chat_role(role: str) -> str:
    """Map exchange-history roles onto chat-completion roles."""
    return "assistant" if role == "model" else "user"


def part_text(part: dict) -> str | None:
    text = part.get("text")
    return text if isinstance(text, str) else None


def part_inline_data(part: dict) -> tuple[str, str] | None:
    """Return ``(mime_type, base64_data)`` for an inline-data part."""
    inline = part.get("inline_data")
    if not isinstance(inline, dict):
        return None
    return str(inline.get("mime_type", "application/octet-stream")), str(inline.get("data", ""))


def unsupported_attachment_note(mime_type: str) -> str:
    return f"[Attachment of type {mime_type} omitted: not supported by this provider]"
