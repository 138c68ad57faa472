"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import time
import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

LOGGER = logging.getLogger("docrag.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "LLM_PROVIDER",
    "EMBEDDING_PROVIDER",
    "COHERE_CHAT_MODEL",
    "COHERE_EMBED_MODEL",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "CHUNK_STORE",
    "DOCUMENT_STORAGE",
    "STORAGE_BUCKET",
    "S3_ENDPOINT_URL",
    "AWS_REGION",
    "RETRIEVER_STRATEGY",
    "RETRIEVAL_WINDOW",
    "RETRIEVAL_TOP_K",
)


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    chat_id: str | None = None,
    document_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if chat_id:
        event["chat_id"] = chat_id
    if document_id:
        event["document_id"] = document_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "cohere_api_key_present": bool(os.getenv("COHERE_API_KEY")),
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    payload = {
        "pid": os.getpid(),
        "hostname": socket.gethostname(),
        "cwd": str(Path.cwd()),
    }
    log_event(LOGGER, "app.startup", details=details, extra=payload)


def emit_inference_request(
    *,
    req_id: str,
    model: str,
    prompt_preview: str,
    prompt_len: int,
    temperature: float,
    max_tokens: int | None,
    chat_id: str | None = None,
) -> None:
    details = {
        "model": model,
        "prompt_preview": prompt_preview[:120],
        "prompt_len": prompt_len,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    log_event(LOGGER, "inference.request", req_id=req_id, chat_id=chat_id, details=details)


def emit_inference_result(
    *,
    req_id: str,
    duration_ms: float,
    model_used: str,
    answer_preview: str,
    ok: bool,
    chat_id: str | None = None,
    error_kind: str | None = None,
) -> None:
    details = {
        "model_used": model_used,
        "answer_preview": answer_preview[:120],
        "ok": ok,
        "error_kind": error_kind,
    }
    log_event(
        LOGGER,
        "inference.result",
        level="info" if ok else "warning",
        req_id=req_id,
        chat_id=chat_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, purpose: str, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "purpose": purpose,
        "duration_ms": round(duration_ms, 3),
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    log_event(LOGGER, "embeddings.compute", details=details)


def emit_chunkstore_event(
    step: str,
    *,
    backend: str,
    count: int,
    document_id: str | None = None,
    error: BaseException | None = None,
) -> None:
    details = {"backend": backend, "count": count}
    level = "error" if error else "info"
    log_event(LOGGER, step, level=level, document_id=document_id, details=details, exc=error)


def emit_storage_event(
    step: str,
    *,
    backend: str,
    bucket: str,
    key: str | None = None,
    size_bytes: int | None = None,
    error: BaseException | None = None,
) -> None:
    details = {"backend": backend, "bucket": bucket, "key": key, "size_bytes": size_bytes}
    level = "error" if error else "info"
    log_event(LOGGER, step, level=level, details=details, exc=error)


def emit_retriever_event(
    *,
    strategy: str,
    query: str,
    fetched: int,
    results: list[dict[str, Any]],
    duration_ms: float,
) -> None:
    details = {
        "strategy": strategy,
        "query_preview": query[:120],
        "fetched": fetched,
        "results": results,
    }
    log_event(LOGGER, "retriever.search", duration_ms=duration_ms, details=details)


def emit_ingest_event(
    step: str,
    *,
    document_id: str,
    file_name: str,
    mime_type: str | None = None,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    chunks: int | None = None,
    success: bool | None = None,
) -> None:
    details = {
        "file": file_name,
        "mime_type": mime_type,
        "size_bytes": size_bytes,
        "chunks": chunks,
        "success": success,
    }
    log_event(LOGGER, step, document_id=document_id, duration_ms=duration_ms, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    chat_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        chat_id=chat_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_app_startup_event",
    "emit_chunkstore_event",
    "emit_embeddings_event",
    "emit_exception",
    "emit_inference_request",
    "emit_inference_result",
    "emit_ingest_event",
    "emit_retriever_event",
    "emit_storage_event",
    "log_event",
    "traced_duration",
]
