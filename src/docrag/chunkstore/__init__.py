"""Chunk table helpers backed by pluggable backends."""

from __future__ import annotations

from functools import lru_cache

from docrag.settings import ConfigurationError, Settings, get_settings

from .base import ChunkStore, build_chunk_records, chunk_metadata
from .errors import StoreUnavailableError
from .memory_store import InMemoryChunkStore


def create_chunk_store(settings: Settings | None = None) -> ChunkStore:
    settings = settings or get_settings()
    backend = settings.chunk_store

    if backend == "memory":
        return InMemoryChunkStore()

    if backend == "sql":
        from .sql_store import SQLChunkStore

        try:
            return SQLChunkStore.from_url(settings.database_url)
        except Exception as exc:  # pragma: no cover - depends on database driver
            raise StoreUnavailableError("Failed to initialise the chunk table engine", cause=exc) from exc

    raise ConfigurationError(f"Unsupported CHUNK_STORE backend: {backend!r}")


@lru_cache()
def get_chunk_store() -> ChunkStore:
    """Return a lazily initialised chunk store based on configuration."""

    return create_chunk_store()


def reset_chunk_store_cache() -> None:
    """Clear the cached chunk store (primarily for testing)."""

    get_chunk_store.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ChunkStore",
    "InMemoryChunkStore",
    "StoreUnavailableError",
    "build_chunk_records",
    "chunk_metadata",
    "create_chunk_store",
    "get_chunk_store",
    "reset_chunk_store_cache",
]
