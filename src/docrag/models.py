"""Domain records shared across ingestion, retrieval and the HTTP layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

ChatRole = Literal["user", "system", "assistant"]
SetupOutcome = Literal["created", "exists"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def chunk_id_for(document_id: str, index: int) -> str:
    """Return the stable identifier of the ``index``-th chunk of a document."""

    return f"{document_id}-chunk-{index}"


@dataclass(slots=True)
class Document:
    """An uploaded file and where it lives in object storage."""

    id: str
    name: str
    type: str
    size: int
    path: str
    created_at: str
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "path": self.path,
            "created_at": self.created_at,
        }
        if self.url is not None:
            payload["url"] = self.url
        return payload


@dataclass(slots=True)
class Chunk:
    """A stored segment of a document's extracted text."""

    id: str
    document_id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class ScoredChunk:
    """A chunk returned by a retriever together with its ranking score."""

    chunk: Chunk
    score: Optional[float] = None

    @property
    def content(self) -> str:
        return self.chunk.content

    @property
    def metadata(self) -> Dict[str, Any]:
        metadata = dict(self.chunk.metadata)
        if self.score is not None:
            metadata["score"] = self.score
        return metadata


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    role: ChatRole
    content: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class Chat:
    id: str
    title: str
    messages: tuple[ChatMessage, ...] = ()
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class DocumentInsight:
    id: str
    document_id: str
    content: str
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "documentId": self.document_id,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
        }


__all__ = [
    "Chat",
    "ChatMessage",
    "ChatRole",
    "Chunk",
    "Document",
    "DocumentInsight",
    "ScoredChunk",
    "SetupOutcome",
    "chunk_id_for",
    "utc_now",
]
