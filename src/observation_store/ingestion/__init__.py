"""Ingestion package."""

from observation_store.ingestion.chunker import (
    ByteChunker,
    chunk_content,
    get_chunker,
    is_char_boundary,
)
from observation_store.ingestion.pipeline import ObservationService

__all__ = [
    "ByteChunker",
    "ObservationService",
    "chunk_content",
    "get_chunker",
    "is_char_boundary",
]
