"""High level ingestion pipeline entry point."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from docrag.chunkstore import ChunkStore
from docrag.embeddings import Embedder
from docrag.logging_config import AUDIT_LOGGER_NAME
from docrag.models import Document
from docrag.telemetry import emit_exception, emit_ingest_event

from .chunking import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP, chunk_text
from .extractors import extract_text

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


@dataclass(slots=True)
class IngestPipelineConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_OVERLAP


@dataclass(slots=True)
class IngestStatistics:
    chunk_count: int
    text_length: int
    embedded: int
    duration_seconds: float


class IngestPipeline:
    """Extract, chunk, embed and store one uploaded document."""

    def __init__(
        self,
        chunk_store: ChunkStore,
        embedder: Embedder,
        config: Optional[IngestPipelineConfig] = None,
    ) -> None:
        self.config = config or IngestPipelineConfig()
        self.chunk_store = chunk_store
        self.embedder = embedder
        self.last_statistics: Optional[IngestStatistics] = None

    def process(self, data: bytes, document: Document) -> bool:
        """Run the pipeline for ``document``; ``False`` when any step fails.

        Embeddings are computed for every chunk and then dropped: only the
        chunk text and metadata reach the store.
        """

        started = time.perf_counter()
        emit_ingest_event(
            "ingest.document.start",
            document_id=document.id,
            file_name=document.name,
            mime_type=document.type,
            size_bytes=document.size,
        )
        chunks: List[str] = []
        success = False
        embedded = 0
        text = ""
        try:
            text = extract_text(data, document.type)
            if not text:
                LOGGER.error("No text extracted from document %s", document.id)
            else:
                chunks = chunk_text(text, self.config.chunk_size, self.config.overlap)
                vectors = self.embedder.embed_documents(chunks)
                embedded = len(vectors)
                LOGGER.info(
                    "Computed %s embeddings for document %s (not persisted)", embedded, document.id
                )
                success = self.chunk_store.store(chunks, document)
        except Exception as error:
            LOGGER.exception("Error processing document %s", document.id)
            emit_exception(module=f"{__name__}.process", error=error)
            success = False

        duration = time.perf_counter() - started
        self.last_statistics = IngestStatistics(
            chunk_count=len(chunks),
            text_length=len(text),
            embedded=embedded,
            duration_seconds=duration,
        )
        emit_ingest_event(
            "ingest.document.complete",
            document_id=document.id,
            file_name=document.name,
            mime_type=document.type,
            size_bytes=document.size,
            duration_ms=duration * 1000.0,
            chunks=len(chunks),
            success=success,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "document_id": document.id,
                "file_name": document.name,
                "chunk_count": len(chunks),
                "success": success,
            }
        )
        return success


__all__ = ["IngestPipeline", "IngestPipelineConfig", "IngestStatistics"]
