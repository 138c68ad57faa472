"""Chunk table backed by any SQLAlchemy-supported database."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Engine,
    Index,
    MetaData,
    Table,
    Text,
    create_engine,
    delete,
    func,
    insert,
    inspect,
    select,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError

from docrag.models import Chunk, Document, SetupOutcome
from docrag.telemetry import emit_chunkstore_event

from .base import build_chunk_records
from .errors import StoreUnavailableError

LOGGER = logging.getLogger(__name__)

TABLE_NAME = "document_chunks"

metadata_obj = MetaData()

document_chunks = Table(
    TABLE_NAME,
    metadata_obj,
    Column("id", Text, primary_key=True),
    Column("document_id", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        server_default=text("'{}'"),
    ),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_document_chunks_document_id", "document_id"),
)


def create_engine_from_url(database_url: str) -> Engine:
    """Create the SQLAlchemy engine used by :class:`SQLChunkStore`."""

    if not database_url:
        raise ValueError("DATABASE_URL must be set to a valid connection string.")
    return create_engine(database_url, pool_pre_ping=True, echo=False)


class SQLChunkStore:
    """Persist chunk rows in the ``document_chunks`` table."""

    backend_name = "sql"

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> "SQLChunkStore":
        return cls(create_engine_from_url(database_url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def store(self, chunks: Sequence[str], document: Document) -> bool:
        records = build_chunk_records(chunks, document)
        if not records:
            return True
        rows = [
            {
                "id": record.id,
                "document_id": record.document_id,
                "content": record.content,
                "metadata": record.metadata,
                "created_at": record.created_at,
            }
            for record in records
        ]
        try:
            with self._engine.begin() as connection:
                connection.execute(insert(document_chunks), rows)
        except SQLAlchemyError as error:
            LOGGER.error("Error storing chunks for document %s: %s", document.id, error)
            emit_chunkstore_event(
                "chunkstore.insert",
                backend=self.backend_name,
                count=len(rows),
                document_id=document.id,
                error=error,
            )
            return False

        emit_chunkstore_event(
            "chunkstore.insert",
            backend=self.backend_name,
            count=len(rows),
            document_id=document.id,
        )
        return True

    def delete_by_document(self, document_id: str) -> bool:
        statement = delete(document_chunks).where(document_chunks.c.document_id == document_id)
        try:
            with self._engine.begin() as connection:
                result = connection.execute(statement)
        except SQLAlchemyError as error:
            LOGGER.error("Error deleting chunks for document %s: %s", document_id, error)
            emit_chunkstore_event(
                "chunkstore.delete",
                backend=self.backend_name,
                count=0,
                document_id=document_id,
                error=error,
            )
            return False

        emit_chunkstore_event(
            "chunkstore.delete",
            backend=self.backend_name,
            count=result.rowcount or 0,
            document_id=document_id,
        )
        return True

    def list_chunks(self, limit: int) -> List[Chunk]:
        if limit <= 0:
            return []
        statement = (
            select(document_chunks)
            .order_by(
                document_chunks.c.created_at,
                document_chunks.c.document_id,
                document_chunks.c.metadata["chunk_index"].as_integer(),
            )
            .limit(limit)
        )
        return self._fetch(statement)

    def list_by_document(self, document_id: str) -> List[Chunk]:
        statement = select(document_chunks).where(document_chunks.c.document_id == document_id)
        rows = self._fetch(statement)
        return sorted(rows, key=lambda row: int(row.metadata.get("chunk_index", 0)))

    def has_chunks(self) -> bool:
        statement = select(document_chunks.c.id).limit(1)
        try:
            with self._engine.connect() as connection:
                return connection.execute(statement).first() is not None
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("Failed to check for document chunks", cause=exc) from exc

    def ensure_schema(self) -> SetupOutcome:
        try:
            if inspect(self._engine).has_table(TABLE_NAME):
                return "exists"
            metadata_obj.create_all(self._engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to create table {TABLE_NAME}", cause=exc) from exc
        LOGGER.info("Created table %s", TABLE_NAME)
        return "created"

    def _fetch(self, statement: Any) -> List[Chunk]:
        try:
            with self._engine.connect() as connection:
                rows = connection.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("Chunk table query failed", cause=exc) from exc
        return [_row_to_chunk(row) for row in rows]


def _row_to_chunk(row: Any) -> Chunk:
    metadata: Dict[str, Any] = dict(row["metadata"] or {})
    chunk = Chunk(
        id=str(row["id"]),
        document_id=str(row["document_id"]),
        content=str(row["content"]),
        metadata=metadata,
    )
    if row["created_at"] is not None:
        chunk.created_at = row["created_at"]
    return chunk


__all__ = ["SQLChunkStore", "create_engine_from_url", "document_chunks", "metadata_obj"]
