"""Chunk store contract and row construction shared by the backends."""
from __future__ import annotations

from typing import Dict, List, Protocol, Sequence

from docrag.models import Chunk, Document, SetupOutcome, chunk_id_for


class ChunkStore(Protocol):
    """Persistence contract for the ``document_chunks`` table."""

    backend_name: str

    def store(self, chunks: Sequence[str], document: Document) -> bool:
        """Insert one row per chunk text in a single batch; ``False`` on error."""

    def delete_by_document(self, document_id: str) -> bool:
        """Delete every row owned by ``document_id``; ``False`` on error."""

    def list_chunks(self, limit: int) -> List[Chunk]:
        """Return up to ``limit`` rows without any ranking."""

    def list_by_document(self, document_id: str) -> List[Chunk]:
        """Return the rows owned by ``document_id`` in chunk order."""

    def has_chunks(self) -> bool:
        """Return whether at least one row exists."""

    def ensure_schema(self) -> SetupOutcome:
        """Create the table and its index when missing."""


def chunk_metadata(document: Document, index: int, total: int) -> Dict[str, object]:
    return {
        "document_id": document.id,
        "document_name": document.name,
        "source": document.path,
        "chunk_index": index,
        "chunk_count": total,
    }


def build_chunk_records(chunks: Sequence[str], document: Document) -> List[Chunk]:
    """Turn chunk texts into rows with derived ids and metadata."""

    total = len(chunks)
    return [
        Chunk(
            id=chunk_id_for(document.id, index),
            document_id=document.id,
            content=content,
            metadata=chunk_metadata(document, index, total),
        )
        for index, content in enumerate(chunks)
    ]


__all__ = ["ChunkStore", "build_chunk_records", "chunk_metadata"]
