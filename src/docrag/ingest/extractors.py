"""Text extraction for uploaded documents."""
from __future__ import annotations

import logging
from typing import Final

LOGGER = logging.getLogger(__name__)

TEXT_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {"text/plain", "text/markdown", "application/json"}
)

_PLACEHOLDER_TEMPLATE: Final[str] = (
    "Extracted text from {mime_type} file.\n"
    "This is placeholder text that would normally be extracted using specialized libraries.\n"
    "Binary formats such as PDF, DOCX and HTML are not parsed by this service."
)


def is_text_type(mime_type: str | None) -> bool:
    if not mime_type:
        return False
    return mime_type.split(";", 1)[0].strip().lower() in TEXT_MIME_TYPES


def placeholder_text(mime_type: str | None) -> str:
    return _PLACEHOLDER_TEMPLATE.format(mime_type=mime_type or "unknown")


def extract_text(data: bytes, mime_type: str | None) -> str:
    """Return the plain text held in ``data``.

    Plain-text-like media types are decoded as UTF-8. Every other type
    degrades to a fixed placeholder instead of raising.
    """

    if is_text_type(mime_type):
        return data.decode("utf-8", errors="replace")

    LOGGER.debug("No extractor for media type %s; using placeholder text", mime_type)
    return placeholder_text(mime_type)


__all__ = ["TEXT_MIME_TYPES", "extract_text", "is_text_type", "placeholder_text"]
