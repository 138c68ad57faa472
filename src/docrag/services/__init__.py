"""Service layer orchestrating storage, indexing and generation."""

from .rag import ChatResult, RAGService, SetupReport, get_rag_service, reset_rag_service_cache

__all__ = [
    "ChatResult",
    "RAGService",
    "SetupReport",
    "get_rag_service",
    "reset_rag_service_cache",
]
