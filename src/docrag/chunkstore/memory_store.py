"""Simple in-memory chunk table for development and tests."""
from __future__ import annotations

import threading
from typing import List, Sequence

from docrag.models import Chunk, Document, SetupOutcome
from docrag.telemetry import emit_chunkstore_event

from .base import build_chunk_records
from .errors import StoreUnavailableError


class InMemoryChunkStore:
    """Keep chunk rows in a list, preserving insertion order."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._rows: List[Chunk] = []
        self._lock = threading.Lock()
        self._schema_ready = False

    def store(self, chunks: Sequence[str], document: Document) -> bool:
        records = build_chunk_records(chunks, document)
        if not records:
            return True
        with self._lock:
            existing = {row.id for row in self._rows}
            duplicates = [record.id for record in records if record.id in existing]
            if duplicates:
                error = StoreUnavailableError(f"Duplicate chunk ids: {', '.join(duplicates)}")
                emit_chunkstore_event(
                    "chunkstore.insert",
                    backend=self.backend_name,
                    count=len(records),
                    document_id=document.id,
                    error=error,
                )
                return False
            self._rows.extend(records)
        emit_chunkstore_event(
            "chunkstore.insert",
            backend=self.backend_name,
            count=len(records),
            document_id=document.id,
        )
        return True

    def delete_by_document(self, document_id: str) -> bool:
        with self._lock:
            before = len(self._rows)
            self._rows = [row for row in self._rows if row.document_id != document_id]
            removed = before - len(self._rows)
        emit_chunkstore_event(
            "chunkstore.delete",
            backend=self.backend_name,
            count=removed,
            document_id=document_id,
        )
        return True

    def list_chunks(self, limit: int) -> List[Chunk]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._rows[:limit])

    def list_by_document(self, document_id: str) -> List[Chunk]:
        with self._lock:
            rows = [row for row in self._rows if row.document_id == document_id]
        return sorted(rows, key=lambda row: int(row.metadata.get("chunk_index", 0)))

    def has_chunks(self) -> bool:
        with self._lock:
            return bool(self._rows)

    def ensure_schema(self) -> SetupOutcome:
        if self._schema_ready:
            return "exists"
        self._schema_ready = True
        return "created"

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


__all__ = ["InMemoryChunkStore"]
