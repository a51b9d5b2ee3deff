from __future__ import annotations

from datetime import datetime

from zero_engine.sessions.models import Session


class SessionController:
    def __init__(self, *, line_prefix: str, short_id_len: int = 14):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    @staticmethod
    def format_timestamp(created_at_ms: int) -> str:
        return datetime.fromtimestamp(created_at_ms / 1000).strftime("%Y-%m-%d %H:%M")

    def format_session_list_entry(self, session: Session, *, active_session_id: str | None) -> str:
        marker = "*" if session.id == active_session_id else " "
        return (
            f"{self._line_prefix}{marker} {session.name} (id={session.id}) "
            f"(created={self.format_timestamp(session.created_at)}, messages={len(session.messages)})"
        )

    def format_session_list(self, sessions: list[Session], *, active_session_id: str | None) -> list[str]:
        return [self.format_session_list_entry(s, active_session_id=active_session_id) for s in sessions]

    def format_summary_lines(self, session: Session) -> list[str]:
        ai_count = sum(1 for m in session.messages if m.author == "ai")
        lines = [f"{self._line_prefix}Session summary:"]
        lines.append(f"{self._line_prefix}- Created: {self.format_timestamp(session.created_at)}")
        lines.append(
            f"{self._line_prefix}- Messages: {len(session.messages)} "
            f"(user={session.user_message_count}, ai={ai_count})"
        )
        lines.append(f"{self._line_prefix}- Model exchange turns: {len(session.model_exchange_history)}")
        last_user = next((m for m in reversed(session.messages) if m.author == "user"), None)
        if last_user is not None:
            lines.append(f"{self._line_prefix}- Last user: {last_user.content[:80]}")
        return lines
