from __future__ import annotations

from dataclasses import dataclass, field

from zero_engine.protocol import ProtocolStateMachine
from zero_engine.sessions.store import SessionStore


@dataclass
class AppContext:
    """Application-scope state shared by the engine and the presentation layer."""

    session_store: SessionStore
    state: ProtocolStateMachine = field(default_factory=ProtocolStateMachine)
    standing_constraints: list[str] = field(default_factory=list)
    source_cache: dict[str, str] | None = None
