from __future__ import annotations

from typing import Any


class ZeroEngineError(Exception):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.details = details


class TurnRejectedError(ZeroEngineError):
    """Raised when a submission arrives while the engine cannot accept one."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__("turn_rejected", message, details)


class SessionNotFoundError(ZeroEngineError):
    def __init__(self, session_id: str):
        super().__init__("session_not_found", f"Session does not exist: {session_id}", {"id": session_id})


class InitializationError(ZeroEngineError):
    def __init__(self, message: str):
        super().__init__("initialization_error", message)


class StreamTimeoutError(ZeroEngineError):
    def __init__(self, timeout_seconds: float):
        super().__init__(
            "stream_timeout",
            f"No response chunk received for {timeout_seconds:g}s",
            {"timeout_seconds": timeout_seconds},
        )


class TurnCancelledError(ZeroEngineError):
    def __init__(self) -> None:
        super().__init__("turn_cancelled", "The turn was cancelled before the response completed")
