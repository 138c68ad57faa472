"""Strategies for choosing which stored chunks back an answer."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import numpy as np

from docrag.chunkstore import ChunkStore
from docrag.embeddings import Embedder
from docrag.models import Chunk, ScoredChunk
from docrag.settings import ConfigurationError, Settings, get_settings
from docrag.telemetry import emit_retriever_event

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW = 10
DEFAULT_TOP_K = 5
MIN_RANDOM_SCORE = 0.5
MAX_RANDOM_SCORE = 0.95
PREVIEW_CHARS = 100


@dataclass(slots=True)
class RetrievalResult:
    """Chunks chosen for a query plus optional per-candidate scoring detail."""

    chunks: List[ScoredChunk]
    similarity_scores: Optional[List[Dict[str, Any]]] = None


class Retriever(Protocol):
    strategy: str

    def fetch_candidates(self, query: str, *, debug: bool = False) -> RetrievalResult:
        """Return an ordered selection of chunks for ``query``."""


def content_preview(content: str, limit: int = PREVIEW_CHARS) -> str:
    return f"{content[:limit]}..."


def _score_entry(item: ScoredChunk) -> Dict[str, Any]:
    return {
        "documentId": item.chunk.document_id,
        "chunkId": item.chunk.id,
        "score": item.score,
        "content": content_preview(item.content),
    }


class _WindowRetriever:
    """Shared plumbing: fetch an unranked window, rank it, keep the top rows."""

    strategy = "base"

    def __init__(
        self,
        store: ChunkStore,
        *,
        window: int = DEFAULT_WINDOW,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        if window <= 0:
            raise ValueError("window must be a positive integer")
        if top_k <= 0:
            raise ValueError("top_k must be a positive integer")
        self._store = store
        self.window = window
        self.top_k = top_k

    def fetch_candidates(self, query: str, *, debug: bool = False) -> RetrievalResult:
        started = time.perf_counter()
        rows = self._store.list_chunks(self.window)
        ranked = self._rank(query, rows)
        selected = ranked[: self.top_k]
        emit_retriever_event(
            strategy=self.strategy,
            query=query,
            fetched=len(rows),
            results=[{"id": item.chunk.id, "score": item.score} for item in selected],
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        scores = [_score_entry(item) for item in ranked] if debug else None
        return RetrievalResult(chunks=selected, similarity_scores=scores)

    def _rank(self, query: str, rows: Sequence[Chunk]) -> List[ScoredChunk]:
        raise NotImplementedError


class FixedOrderRetriever(_WindowRetriever):
    """Return rows in the order the store yields them, unscored."""

    strategy = "fixed"

    def __init__(self, store: ChunkStore, *, top_k: int = DEFAULT_TOP_K) -> None:
        super().__init__(store, window=top_k, top_k=top_k)

    def _rank(self, query: str, rows: Sequence[Chunk]) -> List[ScoredChunk]:
        return [ScoredChunk(chunk=row) for row in rows]


class ScoredRetriever(_WindowRetriever):
    """Assign each fetched row a pseudo-random score and sort by it.

    The query embedding is computed and logged but plays no part in the
    ranking; an embedding failure is logged and otherwise ignored.
    """

    strategy = "scored"

    def __init__(
        self,
        store: ChunkStore,
        embedder: Embedder | None = None,
        *,
        window: int = DEFAULT_WINDOW,
        top_k: int = DEFAULT_TOP_K,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(store, window=window, top_k=top_k)
        self._embedder = embedder
        self._rng = rng or random.Random()

    def _rank(self, query: str, rows: Sequence[Chunk]) -> List[ScoredChunk]:
        self._embed_query(query)
        scored = [
            ScoredChunk(chunk=row, score=self._rng.uniform(MIN_RANDOM_SCORE, MAX_RANDOM_SCORE))
            for row in rows
        ]
        scored.sort(key=lambda item: item.score or 0.0, reverse=True)
        return scored

    def _embed_query(self, query: str) -> None:
        if self._embedder is None:
            return
        try:
            vector = self._embedder.embed_query(query)
        except Exception as error:
            LOGGER.warning("Query embedding failed; continuing without it: %s", error)
            return
        LOGGER.debug("Computed query embedding with %s dimensions", len(vector))


class VectorRetriever(_WindowRetriever):
    """Rank the fetched window by cosine similarity to the query."""

    strategy = "vector"

    def __init__(
        self,
        store: ChunkStore,
        embedder: Embedder,
        *,
        window: int = DEFAULT_WINDOW,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        super().__init__(store, window=window, top_k=top_k)
        self._embedder = embedder

    def _rank(self, query: str, rows: Sequence[Chunk]) -> List[ScoredChunk]:
        if not rows:
            return []
        if not query.strip():
            return [ScoredChunk(chunk=row) for row in rows]

        query_vector = np.asarray(self._embedder.embed_query(query), dtype=float)
        matrix = np.asarray(self._embedder.embed_documents([row.content for row in rows]), dtype=float)
        scores = cosine_similarities(query_vector, matrix)
        order = np.argsort(-scores, kind="stable")
        return [ScoredChunk(chunk=rows[index], score=float(scores[index])) for index in order]


def cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``."""

    if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
        raise ValueError("Vectors must be of the same dimension")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        similarities = np.where(norms > 0, dots / norms, 0.0)
    return similarities


def create_retriever(
    store: ChunkStore,
    embedder: Embedder | None,
    settings: Settings | None = None,
) -> Retriever:
    settings = settings or get_settings()
    strategy = settings.retriever_strategy
    if strategy == "scored":
        return ScoredRetriever(
            store, embedder, window=settings.retrieval_window, top_k=settings.retrieval_top_k
        )
    if strategy == "fixed":
        return FixedOrderRetriever(store, top_k=settings.retrieval_top_k)
    if strategy == "vector":
        if embedder is None:
            raise ConfigurationError("RETRIEVER_STRATEGY=vector requires an embedder")
        return VectorRetriever(
            store, embedder, window=settings.retrieval_window, top_k=settings.retrieval_top_k
        )
    raise ConfigurationError(f"Unsupported RETRIEVER_STRATEGY: {strategy!r}")


__all__ = [
    "FixedOrderRetriever",
    "RetrievalResult",
    "Retriever",
    "ScoredRetriever",
    "VectorRetriever",
    "content_preview",
    "cosine_similarities",
    "create_retriever",
]
