from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from docrag.chunkstore import ChunkStore, StoreUnavailableError, get_chunk_store
from docrag.embeddings import Embedder, get_embedder
from docrag.ingest.pipeline import IngestPipeline
from docrag.llm_provider import LLM, get_llm, unwrap
from docrag.logging_config import AUDIT_LOGGER_NAME
from docrag.models import Document, DocumentInsight, SetupOutcome, utc_now
from docrag.prompt_builder import (
    build_insight_prompt,
    build_no_documents_prompt,
    build_qa_prompt,
    build_retrieval_error_prompt,
    format_documents,
)
from docrag.retriever import Retriever, content_preview, create_retriever
from docrag.storage import DocumentStorage, StoredObject, get_document_storage, make_object_key
from docrag.telemetry import emit_exception, traced_duration

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

INSIGHT_DOCUMENT_ID = "all"


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def _process_step(step: str, message: str) -> Dict[str, str]:
    return {"step": step, "message": message, "timestamp": utc_now().isoformat()}


class DocumentCheckError(RuntimeError):
    """Raised when the chunk table cannot be queried for existing documents."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


@dataclass(slots=True)
class ChatResult:
    """Structured result returned from :meth:`RAGService.chat`."""

    response: str
    debug: Dict[str, Any]


@dataclass(slots=True)
class SetupReport:
    """Outcome of bootstrapping the chunk table and the storage bucket."""

    table: Optional[SetupOutcome] = None
    bucket: Optional[SetupOutcome] = None
    table_error: Optional[str] = None
    bucket_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.table_error is None and self.bucket_error is None


@dataclass(slots=True)
class _DebugInfo:
    has_documents: bool
    retrieved_documents: Optional[List[Dict[str, Any]]] = None
    similarity_scores: Optional[List[Dict[str, Any]]] = None
    total_ms: float = 0.0
    retrieval_ms: float = 0.0
    llm_ms: float = 0.0
    steps: List[Dict[str, str]] = field(default_factory=list)

    def add_step(self, step: str, message: str) -> None:
        self.steps.append(_process_step(step, message))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasDocuments": self.has_documents,
            "retrievedDocuments": self.retrieved_documents,
            "similarityScores": self.similarity_scores,
            "timing": {
                "total": self.total_ms,
                "retrieval": self.retrieval_ms,
                "llmProcessing": self.llm_ms,
            },
            "processSteps": self.steps,
        }


class RAGService:
    """High level orchestration for uploads, chat answers, insights and setup.

    Collaborators left as ``None`` are resolved from their cached factories on
    first use, so a missing API key only fails the request that needs it.
    """

    def __init__(
        self,
        *,
        storage: DocumentStorage | None = None,
        chunk_store: ChunkStore | None = None,
        embedder: Embedder | None = None,
        llm_factory: Callable[[], LLM] | None = None,
        retriever: Retriever | None = None,
        pipeline: IngestPipeline | None = None,
    ) -> None:
        self._storage = storage
        self._chunk_store = chunk_store
        self._embedder = embedder
        self._llm_factory = llm_factory or get_llm
        self._retriever = retriever
        self._pipeline = pipeline

    @property
    def storage(self) -> DocumentStorage:
        if self._storage is None:
            self._storage = get_document_storage()
        return self._storage

    @property
    def chunk_store(self) -> ChunkStore:
        if self._chunk_store is None:
            self._chunk_store = get_chunk_store()
        return self._chunk_store

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = get_embedder()
        return self._embedder

    @property
    def retriever(self) -> Retriever:
        if self._retriever is None:
            self._retriever = create_retriever(self.chunk_store, self.embedder)
        return self._retriever

    @property
    def pipeline(self) -> IngestPipeline:
        if self._pipeline is None:
            self._pipeline = IngestPipeline(self.chunk_store, self.embedder)
        return self._pipeline

    # Documents

    def upload_document(self, filename: str, content_type: str, data: bytes) -> Document:
        """Store ``data`` and index its text; indexing failures do not fail the upload."""

        document_id = str(uuid.uuid4())
        key = make_object_key(filename)
        stored = self.storage.upload(
            key, data, content_type=content_type, document_id=document_id, name=filename
        )
        document = Document(
            id=document_id,
            name=filename,
            type=content_type,
            size=stored.size,
            path=key,
            created_at=stored.created_at,
            url=self.storage.public_url(key),
        )
        if not self.pipeline.process(data, document):
            LOGGER.warning(
                "Document %s was uploaded but processing for embeddings failed", document_id
            )
        return document

    def list_documents(self) -> List[Document]:
        return [self._to_document(stored) for stored in self.storage.list_objects()]

    def delete_document(self, document_id: str) -> bool:
        """Remove the stored file, then its chunks. ``False`` when the id is unknown."""

        target = next(
            (stored for stored in self.storage.list_objects() if stored.id == document_id), None
        )
        if target is None:
            return False

        self.storage.remove([target.key])
        if not self.chunk_store.delete_by_document(document_id):
            LOGGER.warning(
                "Document file was deleted but chunk deletion failed for document %s", document_id
            )
        AUDIT_LOGGER.info({"event": "delete", "document_id": document_id, "key": target.key})
        return True

    def _to_document(self, stored: StoredObject) -> Document:
        return Document(
            id=stored.id,
            name=stored.name,
            type=stored.mime_type or "unknown",
            size=stored.size,
            path=stored.key,
            created_at=stored.created_at,
            url=self.storage.public_url(stored.key),
        )

    # Chat

    def chat(self, message: str, chat_id: str | None = None) -> ChatResult:
        overall_started = time.perf_counter()
        has_documents = self._has_documents()
        debug = _DebugInfo(has_documents=has_documents)
        debug.add_step("query_received", "Received user query")

        if has_documents:
            debug.add_step("documents_found", "Found documents in database, proceeding with RAG")
            try:
                response = self._answer_from_documents(message, chat_id, debug)
            except Exception as error:
                LOGGER.exception("Error in RAG process for chat %s", chat_id)
                emit_exception(module=f"{__name__}.chat", error=error, chat_id=chat_id)
                debug.add_step("error", f"Error in RAG process: {error}")
                llm_started = time.perf_counter()
                response = self._generate(build_retrieval_error_prompt(message), chat_id)
                debug.llm_ms = _elapsed_ms(llm_started)
        else:
            debug.add_step("no_documents", "No documents found in database, using direct LLM")
            llm_started = time.perf_counter()
            response = self._generate(build_no_documents_prompt(message), chat_id)
            debug.llm_ms = _elapsed_ms(llm_started)
            debug.add_step(
                "response_generated",
                f"Generated response using direct LLM (no documents) in {debug.llm_ms:.0f}ms",
            )

        debug.total_ms = _elapsed_ms(overall_started)
        AUDIT_LOGGER.info(
            {
                "event": "chat",
                "chat_id": chat_id,
                "has_documents": has_documents,
                "retrieved": len(debug.retrieved_documents or []),
            }
        )
        return ChatResult(response=response, debug=debug.to_dict())

    def _answer_from_documents(self, message: str, chat_id: str | None, debug: _DebugInfo) -> str:
        retrieval_started = time.perf_counter()
        retrieval = self.retriever.fetch_candidates(message, debug=True)
        debug.retrieval_ms = _elapsed_ms(retrieval_started)

        debug.retrieved_documents = [
            {
                "id": item.metadata.get("document_id", ""),
                "name": item.metadata.get("document_name", ""),
                "chunkId": item.chunk.id,
                "content": content_preview(item.content),
            }
            for item in retrieval.chunks
        ]
        if retrieval.similarity_scores is not None:
            debug.similarity_scores = retrieval.similarity_scores
        debug.add_step(
            "documents_retrieved",
            f"Retrieved {len(retrieval.chunks)} relevant document chunks in {debug.retrieval_ms:.0f}ms",
        )

        debug.add_step("llm_processing", "Processing with LLM using RAG")
        llm_started = time.perf_counter()
        prompt = build_qa_prompt(message, format_documents(retrieval.chunks))
        response = self._generate(prompt, chat_id)
        debug.llm_ms = _elapsed_ms(llm_started)
        debug.add_step(
            "response_generated",
            f"Generated response using retrieved documents in {debug.llm_ms:.0f}ms",
        )
        return response

    def _generate(self, prompt: str, chat_id: str | None) -> str:
        return unwrap(self._llm_factory().generate(prompt, chat_id=chat_id))

    def _has_documents(self) -> bool:
        try:
            return self.chunk_store.has_chunks()
        except StoreUnavailableError as exc:
            raise DocumentCheckError(str(exc), cause=exc) from exc

    # Insights

    def generate_insight(self) -> DocumentInsight | None:
        """Summarise the stored chunks, or ``None`` when nothing is indexed."""

        if not self._has_documents():
            return None
        retrieval = self.retriever.fetch_candidates("")
        content = self._generate(build_insight_prompt(format_documents(retrieval.chunks)), None)
        return DocumentInsight(
            id=str(uuid.uuid4()), document_id=INSIGHT_DOCUMENT_ID, content=content
        )

    # Setup

    def setup(self) -> SetupReport:
        """Create the chunk table and the bucket when missing; safe to repeat."""

        report = SetupReport()
        with traced_duration("setup", logger=LOGGER):
            try:
                report.table = self.chunk_store.ensure_schema()
            except Exception as error:
                LOGGER.warning("Table setup warning: %s", error)
                report.table_error = str(error)
            try:
                report.bucket = self.storage.ensure_bucket()
            except Exception as error:
                LOGGER.error("Error creating bucket: %s", error)
                report.bucket_error = str(error)
        return report


@lru_cache()
def get_rag_service() -> RAGService:
    """FastAPI dependency returning the shared :class:`RAGService` instance."""

    return RAGService()


def reset_rag_service_cache() -> None:
    get_rag_service.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ChatResult",
    "DocumentCheckError",
    "RAGService",
    "SetupReport",
    "get_rag_service",
    "reset_rag_service_cache",
]
