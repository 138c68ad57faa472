"""Embedding helpers backed by the hosted Cohere embedding API."""
from __future__ import annotations

import hashlib
import logging
import random
import time
from functools import lru_cache
from typing import Any, Callable, List, Protocol, Sequence

import cohere

from docrag.settings import ConfigurationError, Settings, get_settings
from docrag.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)

FALLBACK_DIMENSION = 384
# Cohere rejects embed requests carrying more texts than this.
MAX_EMBED_BATCH = 96


class Embedder(Protocol):
    """Contract shared by every embedding backend."""

    model_name: str

    def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        ...

    def embed_query(self, text: str) -> List[float]:
        ...


def _timed_embed(
    model_name: str,
    purpose: str,
    texts: Sequence[str],
    embedder: Callable[[Sequence[str]], List[List[float]]],
) -> List[List[float]]:
    if not texts:
        return []
    started = time.perf_counter()
    try:
        embeddings = embedder(texts)
    except Exception as error:
        emit_embeddings_event(
            model=model_name,
            count=len(texts),
            purpose=purpose,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            errors=[str(error)],
        )
        raise

    emit_embeddings_event(
        model=model_name,
        count=len(texts),
        purpose=purpose,
        duration_ms=(time.perf_counter() - started) * 1000.0,
    )
    return embeddings


class CohereEmbedder:
    """Wrapper around ``cohere.Client.embed``."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model_name: str | None = None,
        client: Any | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.model_name = model_name or settings.cohere_embed_model
        if client is None:
            key = api_key or settings.require_api_key()
            client = cohere.Client(api_key=key)
        self._client = client

    def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        return _timed_embed(
            self.model_name,
            "search_document",
            texts,
            lambda batch: self._embed(batch, "search_document"),
        )

    def embed_query(self, text: str) -> List[float]:
        vectors = _timed_embed(
            self.model_name,
            "search_query",
            [text],
            lambda batch: self._embed(batch, "search_query"),
        )
        return vectors[0] if vectors else []

    def _embed(self, texts: Sequence[str], input_type: str) -> List[List[float]]:
        vectors: List[List[float]] = []
        for start in range(0, len(texts), MAX_EMBED_BATCH):
            response = self._client.embed(
                texts=list(texts[start : start + MAX_EMBED_BATCH]),
                model=self.model_name,
                input_type=input_type,
            )
            vectors.extend(list(map(float, vector)) for vector in response.embeddings)
        return vectors


class DeterministicEmbedder:
    """Offline embedder returning sha256-seeded pseudo-random vectors."""

    def __init__(self, dimension: int = FALLBACK_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        self.dimension = dimension
        self.model_name = "deterministic-fallback"

    def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        return _timed_embed(self.model_name, "search_document", texts, self._embed)

    def embed_query(self, text: str) -> List[float]:
        vectors = _timed_embed(self.model_name, "search_query", [text], self._embed)
        return vectors[0] if vectors else []

    def _embed(self, texts: Sequence[str]) -> List[List[float]]:
        return [self._deterministic_embedding(str(text)) for text in texts]

    def _deterministic_embedding(self, text: str) -> List[float]:
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest(), "big")
        rng = random.Random(seed)
        return [rng.uniform(-1.0, 1.0) for _ in range(self.dimension)]


def create_embedder(settings: Settings | None = None) -> Embedder:
    settings = settings or get_settings()
    provider = settings.embedding_provider
    if provider == "mock":
        LOGGER.info("EMBEDDING_PROVIDER=mock; using deterministic embeddings.")
        return DeterministicEmbedder()
    if provider == "cohere":
        return CohereEmbedder(settings=settings)
    raise ConfigurationError(f"Unsupported EMBEDDING_PROVIDER: {provider!r}")


@lru_cache()
def get_embedder() -> Embedder:
    """Return a cached embedder instance."""

    return create_embedder()


def reset_embedder_cache() -> None:
    """Clear the cached embedder instance (primarily for testing)."""

    get_embedder.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "CohereEmbedder",
    "DeterministicEmbedder",
    "Embedder",
    "FALLBACK_DIMENSION",
    "MAX_EMBED_BATCH",
    "create_embedder",
    "get_embedder",
    "reset_embedder_cache",
]
