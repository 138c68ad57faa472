"""Paragraph-based chunking of extracted text."""
from __future__ import annotations

import logging
import re
from typing import Iterator, List, Tuple

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200

_PARAGRAPH_BREAK_RE = re.compile(r"(\n\s*\n)")


def split_paragraphs(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(separator, paragraph)`` pairs in document order.

    The separator is the blank-line run that preceded the paragraph (empty for
    the first one), so joining every pair reproduces ``text`` exactly.
    """

    parts = _PARAGRAPH_BREAK_RE.split(text)
    yield "", parts[0]
    for index in range(1, len(parts), 2):
        yield parts[index], parts[index + 1]


def overlap_words(text: str, overlap: int) -> str:
    """Return the trailing ``overlap // 10`` words of ``text``."""

    word_count = overlap // 10
    if word_count <= 0:
        return ""
    return " ".join(text.split()[-word_count:])


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> List[str]:
    """Split *text* into paragraph-aligned chunks of roughly ``chunk_size`` characters.

    Paragraphs accumulate in a buffer until the next one would push it past
    ``chunk_size``. The buffer is then closed and the next one starts with the
    closing buffer's last ``overlap // 10`` words. A paragraph larger than
    ``chunk_size`` is kept whole.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")
    if overlap < 0:
        raise ValueError("overlap must be a non-negative integer")

    chunks: List[str] = []
    current = ""

    for separator, paragraph in split_paragraphs(text):
        if current.strip() and len(current) + len(paragraph) > chunk_size:
            closed = current.strip()
            chunks.append(closed)
            seed = overlap_words(closed, overlap)
            current = f"{seed} {paragraph}" if seed else paragraph
        elif current:
            current += separator + paragraph
        else:
            current = paragraph

    if current.strip():
        chunks.append(current.strip())

    LOGGER.debug("Split %s characters into %s chunks", len(text), len(chunks))
    return chunks


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_OVERLAP",
    "chunk_text",
    "overlap_words",
    "split_paragraphs",
]
