"""Shared fixtures wiring the service to in-memory backends."""
from __future__ import annotations

import random
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from docrag.chunkstore import InMemoryChunkStore, reset_chunk_store_cache
from docrag.embeddings import DeterministicEmbedder, reset_embedder_cache
from docrag.ingest.pipeline import IngestPipeline
from docrag.llm_provider import MockLLM, reset_llm_cache
from docrag.retriever import ScoredRetriever
from docrag.services.rag import RAGService, get_rag_service, reset_rag_service_cache
from docrag.settings import reset_settings_cache
from docrag.storage import InMemoryDocumentStorage, reset_document_storage_cache

_ENV_VARS = (
    "COHERE_API_KEY",
    "LLM_PROVIDER",
    "EMBEDDING_PROVIDER",
    "CHUNK_STORE",
    "DOCUMENT_STORAGE",
    "RETRIEVER_STRATEGY",
    "RETRIEVAL_WINDOW",
    "RETRIEVAL_TOP_K",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
)


def _reset_caches() -> None:
    reset_settings_cache()
    reset_chunk_store_cache()
    reset_document_storage_cache()
    reset_embedder_cache()
    reset_llm_cache()
    reset_rag_service_cache()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    _reset_caches()
    yield
    _reset_caches()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def chunk_store() -> InMemoryChunkStore:
    return InMemoryChunkStore()


@pytest.fixture
def document_storage() -> InMemoryDocumentStorage:
    return InMemoryDocumentStorage("documents")


@pytest.fixture
def embedder() -> DeterministicEmbedder:
    return DeterministicEmbedder(dimension=16)


@pytest.fixture
def rag_service(chunk_store, document_storage, embedder) -> RAGService:
    llm = MockLLM()
    return RAGService(
        storage=document_storage,
        chunk_store=chunk_store,
        embedder=embedder,
        llm_factory=lambda: llm,
        retriever=ScoredRetriever(chunk_store, embedder, rng=random.Random(7)),
        pipeline=IngestPipeline(chunk_store, embedder),
    )


@pytest.fixture
def client(rag_service) -> Iterator[TestClient]:
    from docrag.main import app

    app.dependency_overrides[get_rag_service] = lambda: rag_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
