from zero_engine.sessions.models import (
    Attachment,
    Citation,
    ExchangeTurn,
    Message,
    Session,
    Translation,
)
from zero_engine.sessions.storage import InMemoryStorage, KeyValueStorage, SqliteStorage, create_storage
from zero_engine.sessions.store import SessionStore
from zero_engine.sessions.transcript import render_transcript

__all__ = [
    "Attachment",
    "Citation",
    "ExchangeTurn",
    "InMemoryStorage",
    "KeyValueStorage",
    "Message",
    "Session",
    "SessionStore",
    "SqliteStorage",
    "Translation",
    "create_storage",
    "render_transcript",
]
