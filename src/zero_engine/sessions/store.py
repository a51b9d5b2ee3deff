from __future__ import annotations

import json
from dataclasses import replace

from loguru import logger

from zero_engine.errors import SessionNotFoundError
from zero_engine.sessions.models import Session
from zero_engine.sessions.storage import ACTIVE_SESSION_KEY, SESSIONS_KEY, KeyValueStorage
from zero_engine.sessions.transcript import render_transcript


def serialize_sessions(sessions: list[Session]) -> str:
    return json.dumps([s.to_dict() for s in sessions], ensure_ascii=True)


def deserialize_sessions(raw: str) -> list[Session]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("Persisted sessions must be a list")
    return [Session.from_dict(item) for item in data]


class SessionStore:
    """Ordered session collection plus the active pointer.

    Sessions are replaced whole, never edited in place, and every mutation is
    written to storage before the call returns. Whenever the collection is
    non-empty exactly one session is active.

    A collection swapped in with ``reset(persist=False)`` is a placeholder:
    while it is in place nothing is written to or removed from storage, and
    the first real session added replaces it.
    """

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage
        self._sessions: list[Session] = []
        self._active_session_id: str | None = None
        self._placeholder = False

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def active_session_id(self) -> str | None:
        return self._active_session_id

    @property
    def active_session(self) -> Session | None:
        if self._active_session_id is None:
            return None
        return self._find(self._active_session_id)

    @property
    def is_placeholder(self) -> bool:
        return self._placeholder

    def is_empty(self) -> bool:
        return not self._sessions

    def load(self) -> bool:
        """Rehydrate from storage. Returns False when nothing usable was stored."""
        raw_sessions = self._storage.get(SESSIONS_KEY)
        raw_active = self._storage.get(ACTIVE_SESSION_KEY)
        if not raw_sessions or not raw_active:
            return False

        try:
            sessions = deserialize_sessions(raw_sessions)
            if raw_active not in {s.id for s in sessions}:
                raise ValueError(f"Active session {raw_active!r} is not in the persisted collection")
        except (ValueError, KeyError, TypeError, AttributeError) as ex:
            logger.warning(f"Discarding corrupt persisted sessions: {ex}")
            self._clear_storage()
            return False

        self._sessions = sessions
        self._active_session_id = raw_active
        self._placeholder = False
        logger.info(f"Loaded {len(sessions)} persisted session(s), active={raw_active}")
        return True

    def get(self, session_id: str) -> Session:
        session = self._find(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def add(self, session: Session, *, activate: bool = True) -> None:
        if self._find(session.id) is not None:
            raise ValueError(f"Session already exists: {session.id}")
        if self._placeholder:
            logger.info(f"Dropping placeholder session(s): {', '.join(s.id for s in self._sessions)}")
            self._sessions = []
            self._active_session_id = None
            self._placeholder = False
        self._sessions = [*self._sessions, session]
        if activate or self._active_session_id is None:
            self._active_session_id = session.id
        self._persist()

    def replace(self, session: Session) -> None:
        self.get(session.id)
        self._sessions = [session if s.id == session.id else s for s in self._sessions]
        self._persist()

    def reset(self, sessions: list[Session], active_session_id: str, *, persist: bool = True) -> None:
        """Swap in a whole collection. ``persist=False`` leaves storage untouched."""
        if active_session_id not in {s.id for s in sessions}:
            raise SessionNotFoundError(active_session_id)
        self._sessions = list(sessions)
        self._active_session_id = active_session_id
        self._placeholder = not persist
        self._persist()

    def activate(self, session_id: str) -> Session:
        session = self.get(session_id)
        self._active_session_id = session_id
        self._persist()
        logger.info(f"Activated session {session_id}")
        return session

    def rename(self, session_id: str, name: str) -> Session:
        title = name.strip()
        if not title:
            raise ValueError("Session name must not be empty")
        session = self.get(session_id)
        renamed = replace(session, name=title)
        self.replace(renamed)
        logger.info(f"Renamed session {session_id} to {title!r}")
        return renamed

    def delete(self, session_id: str) -> str | None:
        """Delete a session and return the active id afterwards.

        Deleting the active session promotes the most recently created
        remaining one. Deleting the last session clears storage and returns
        None.
        """
        self.get(session_id)
        remaining = [s for s in self._sessions if s.id != session_id]
        logger.info(f"Deleted session {session_id} ({len(remaining)} remaining)")

        if not remaining:
            self._sessions = []
            self._active_session_id = None
            self._persist()
            return None

        self._sessions = remaining
        if session_id == self._active_session_id:
            promoted = max(remaining, key=lambda s: s.created_at)
            self._active_session_id = promoted.id
        self._persist()
        return self._active_session_id

    def export_active_transcript(self) -> str:
        session = self.active_session
        if session is None:
            return ""
        return render_transcript(session.messages)

    def _find(self, session_id: str) -> Session | None:
        for s in self._sessions:
            if s.id == session_id:
                return s
        return None

    def _persist(self) -> None:
        if self._placeholder:
            return
        if self._sessions and self._active_session_id:
            self._storage.set(SESSIONS_KEY, serialize_sessions(self._sessions))
            self._storage.set(ACTIVE_SESSION_KEY, self._active_session_id)
        elif not self._sessions:
            self._clear_storage()

    def _clear_storage(self) -> None:
        self._storage.remove(SESSIONS_KEY)
        self._storage.remove(ACTIVE_SESSION_KEY)
