"""Document ingestion: extraction, chunking and persistence."""

from .chunking import chunk_text, split_paragraphs
from .extractors import extract_text
from .pipeline import IngestPipeline, IngestPipelineConfig, IngestStatistics

__all__ = [
    "IngestPipeline",
    "IngestPipelineConfig",
    "IngestStatistics",
    "chunk_text",
    "extract_text",
    "split_paragraphs",
]
