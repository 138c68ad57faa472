from __future__ import annotations

import json
import logging
from unittest.mock import Mock

from docrag.chunkstore import InMemoryChunkStore
from docrag.embeddings import DeterministicEmbedder
from docrag.ingest.pipeline import IngestPipeline, IngestPipelineConfig
from docrag.logging_config import configure_logging
from docrag.models import Document


def _document(mime_type: str = "text/plain") -> Document:
    return Document(
        id="doc-7",
        name="guide.txt",
        type=mime_type,
        size=0,
        path="key-guide.txt",
        created_at="2024-01-01T00:00:00+00:00",
    )


def test_process_stores_chunks_and_discards_embeddings() -> None:
    store = InMemoryChunkStore()
    embedder = Mock(wraps=DeterministicEmbedder(dimension=4))
    pipeline = IngestPipeline(store, embedder, IngestPipelineConfig(chunk_size=40, overlap=20))
    text = "First paragraph of the guide.\n\nSecond paragraph of the guide.\n\nThird one."

    assert pipeline.process(text.encode("utf-8"), _document())

    rows = store.list_by_document("doc-7")
    assert len(rows) == 3
    embedder.embed_documents.assert_called_once_with([row.content for row in rows])
    stats = pipeline.last_statistics
    assert stats.chunk_count == 3
    assert stats.embedded == 3
    assert stats.text_length == len(text)


def test_placeholder_text_is_indexed_for_binary_types() -> None:
    store = InMemoryChunkStore()
    pipeline = IngestPipeline(store, DeterministicEmbedder(dimension=4))

    assert pipeline.process(b"%PDF", _document("application/pdf"))

    [row] = store.list_by_document("doc-7")
    assert "application/pdf" in row.content


def test_empty_text_fails_without_storing() -> None:
    store = InMemoryChunkStore()
    pipeline = IngestPipeline(store, DeterministicEmbedder(dimension=4))

    assert pipeline.process(b"", _document()) is False
    assert not store.has_chunks()


def test_embedding_failure_is_reported_as_false() -> None:
    store = InMemoryChunkStore()
    embedder = Mock()
    embedder.embed_documents.side_effect = RuntimeError("quota exceeded")
    pipeline = IngestPipeline(store, embedder)

    assert pipeline.process(b"some text", _document()) is False
    assert not store.has_chunks()


def test_audit_log_records_each_document(tmp_path) -> None:
    configure_logging(tmp_path)
    pipeline = IngestPipeline(InMemoryChunkStore(), DeterministicEmbedder(dimension=4))

    pipeline.process(b"audited text", _document())
    for handler in logging.getLogger("docrag.ingest.audit").handlers:
        handler.flush()

    lines = (tmp_path / "ingest_audit.log").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["event"] == "ingest"
    assert record["document_id"] == "doc-7"
    assert record["chunk_count"] == 1
    assert record["success"] is True
