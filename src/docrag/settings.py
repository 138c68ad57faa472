"""Environment-driven configuration for the service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

LOGGER = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "command-r"
DEFAULT_EMBED_MODEL = "embed-english-v3.0"
DEFAULT_BUCKET = "documents"


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or invalid."""


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _optional_from_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    cohere_api_key: str | None
    cohere_chat_model: str
    cohere_embed_model: str
    llm_provider: str
    embedding_provider: str
    llm_temperature: float
    llm_max_tokens: int
    chunk_store: str
    database_url: str
    document_storage: str
    storage_bucket: str
    s3_endpoint_url: str | None
    aws_region: str | None
    storage_public_url: str | None
    retriever_strategy: str
    retrieval_window: int
    retrieval_top_k: int
    log_dir: str

    def require_api_key(self) -> str:
        """Return the hosted-model API key or fail immediately."""

        if not self.cohere_api_key:
            raise ConfigurationError("COHERE_API_KEY is not set")
        return self.cohere_api_key


def load_settings() -> Settings:
    return Settings(
        cohere_api_key=_optional_from_env("COHERE_API_KEY"),
        cohere_chat_model=_str_from_env("COHERE_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        cohere_embed_model=_str_from_env("COHERE_EMBED_MODEL", DEFAULT_EMBED_MODEL),
        llm_provider=_str_from_env("LLM_PROVIDER", "cohere").lower(),
        embedding_provider=_str_from_env("EMBEDDING_PROVIDER", "cohere").lower(),
        llm_temperature=_float_from_env("LLM_TEMPERATURE", 0.1),
        llm_max_tokens=_int_from_env("LLM_MAX_TOKENS", 1024),
        chunk_store=_str_from_env("CHUNK_STORE", "memory").lower(),
        database_url=_str_from_env("DATABASE_URL", "sqlite:///docrag.db"),
        document_storage=_str_from_env("DOCUMENT_STORAGE", "memory").lower(),
        storage_bucket=_str_from_env("STORAGE_BUCKET", DEFAULT_BUCKET),
        s3_endpoint_url=_optional_from_env("S3_ENDPOINT_URL"),
        aws_region=_optional_from_env("AWS_REGION"),
        storage_public_url=_optional_from_env("STORAGE_PUBLIC_URL"),
        retriever_strategy=_str_from_env("RETRIEVER_STRATEGY", "scored").lower(),
        retrieval_window=_int_from_env("RETRIEVAL_WINDOW", 10),
        retrieval_top_k=_int_from_env("RETRIEVAL_TOP_K", 5),
        log_dir=_str_from_env("LOG_DIR", "logs"),
    )


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings snapshot."""

    return load_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ConfigurationError",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings_cache",
]
