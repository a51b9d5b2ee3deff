from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass, field, replace
from pathlib import Path

from zero_engine.parsing import ParsedResponse

DEFAULT_SESSION_NAME = "New Session"
AUTO_NAME_MAX_CHARS = 50


def text_part(text: str) -> dict:
    return {"text": text}


def inline_data_part(mime_type: str, data: str) -> dict:
    return {"inline_data": {"mime_type": mime_type, "data": data}}


@dataclass(frozen=True)
class Citation:
    uri: str
    title: str

    def to_dict(self) -> dict:
        return {"uri": self.uri, "title": self.title}

    @classmethod
    def from_dict(cls, data: dict) -> Citation:
        return cls(uri=str(data["uri"]), title=str(data["title"]))


@dataclass(frozen=True)
class Translation:
    lang: str
    content: str

    def to_dict(self) -> dict:
        return {"lang": self.lang, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> Translation:
        return cls(lang=str(data["lang"]), content=str(data["content"]))


@dataclass(frozen=True)
class Attachment:
    name: str
    mime_type: str
    size: int
    data: str

    @property
    def preview(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_part(self) -> dict:
        return inline_data_part(self.mime_type, self.data)

    def to_dict(self) -> dict:
        return {"name": self.name, "mime_type": self.mime_type, "size": self.size, "data": self.data}

    @classmethod
    def from_dict(cls, data: dict) -> Attachment:
        return cls(
            name=str(data["name"]),
            mime_type=str(data["mime_type"]),
            size=int(data["size"]),
            data=str(data["data"]),
        )

    @classmethod
    def from_path(cls, path: str | Path) -> Attachment:
        file_path = Path(path)
        raw = file_path.read_bytes()
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            name=file_path.name,
            mime_type=mime_type or "application/octet-stream",
            size=len(raw),
            data=base64.b64encode(raw).decode("ascii"),
        )


@dataclass(frozen=True)
class Message:
    id: int
    author: str
    content: str
    citations: list[Citation] | None = None
    attachment: Attachment | None = None
    translation: Translation | None = None
    is_translating: bool = False
    parsed_data: ParsedResponse | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "is_translating": self.is_translating,
        }
        if self.citations is not None:
            data["citations"] = [c.to_dict() for c in self.citations]
        if self.attachment is not None:
            data["attachment"] = self.attachment.to_dict()
        if self.translation is not None:
            data["translation"] = self.translation.to_dict()
        if self.parsed_data is not None:
            data["parsed_data"] = self.parsed_data.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        citations = data.get("citations")
        attachment = data.get("attachment")
        translation = data.get("translation")
        parsed = data.get("parsed_data")
        return cls(
            id=int(data["id"]),
            author=str(data["author"]),
            content=str(data["content"]),
            citations=[Citation.from_dict(c) for c in citations] if citations is not None else None,
            attachment=Attachment.from_dict(attachment) if attachment is not None else None,
            translation=Translation.from_dict(translation) if translation is not None else None,
            is_translating=bool(data.get("is_translating", False)),
            parsed_data=ParsedResponse.from_dict(parsed) if parsed is not None else None,
        )


@dataclass(frozen=True)
class ExchangeTurn:
    role: str
    parts: list[dict]

    def to_dict(self) -> dict:
        return {"role": self.role, "parts": [dict(p) for p in self.parts]}

    @classmethod
    def from_dict(cls, data: dict) -> ExchangeTurn:
        role = str(data["role"])
        if role not in ("user", "model"):
            raise ValueError(f"Unknown exchange role: {role!r}")
        return cls(role=role, parts=list(data["parts"]))


@dataclass(frozen=True)
class Session:
    id: str
    name: str
    created_at: int
    messages: list[Message] = field(default_factory=list)
    model_exchange_history: list[ExchangeTurn] = field(default_factory=list)

    @property
    def user_message_count(self) -> int:
        return sum(1 for m in self.messages if m.author == "user")

    def with_messages(self, messages: list[Message]) -> Session:
        return replace(self, messages=messages)

    def with_message(self, message: Message) -> Session:
        """Replace the message carrying ``message.id``."""
        return replace(self, messages=[message if m.id == message.id else m for m in self.messages])

    def find_message(self, message_id: int) -> Message | None:
        for m in self.messages:
            if m.id == message_id:
                return m
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "messages": [m.to_dict() for m in self.messages],
            "model_exchange_history": [t.to_dict() for t in self.model_exchange_history],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Session:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=int(data["created_at"]),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            model_exchange_history=[ExchangeTurn.from_dict(t) for t in data.get("model_exchange_history", [])],
        )


def derive_session_name(user_text: str) -> str:
    return user_text[:AUTO_NAME_MAX_CHARS]
