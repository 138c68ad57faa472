"""JSON error bodies of the form ``{"error": ..., **extra}``."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docrag.telemetry import emit_exception

LOGGER = logging.getLogger(__name__)

MANUAL_TABLE_INSTRUCTIONS = "Run the SQL from sql/schema.sql against the database configured by DATABASE_URL"
MANUAL_BUCKET_INSTRUCTIONS = "Create a 'documents' bucket in the configured object storage"
MANUAL_SETUP_INSTRUCTIONS = f"1. {MANUAL_TABLE_INSTRUCTIONS}\n2. {MANUAL_BUCKET_INSTRUCTIONS}"


class APIError(Exception):
    """Raised by route handlers to return a JSON error body."""

    def __init__(self, status_code: int, error: str, **extra: Any) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        body.update(self.extra)
        return body


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error in %s %s", request.method, request.url.path)
    emit_exception(module=f"{__name__}.unhandled", error=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": str(exc)},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = [
    "APIError",
    "MANUAL_BUCKET_INSTRUCTIONS",
    "MANUAL_SETUP_INSTRUCTIONS",
    "MANUAL_TABLE_INSTRUCTIONS",
    "install_error_handlers",
]
