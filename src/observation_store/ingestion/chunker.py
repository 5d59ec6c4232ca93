"""Byte-budget chunker that never splits a UTF-8 encoded character."""

from observation_store.config import get_settings
from observation_store.errors import InvalidChunkSizeError
from observation_store.models.chunk import DEFAULT_TOKEN_ESTIMATE, Chunk
from observation_store.models.ids import ObservationId
from observation_store.models.observation import Observation


def is_char_boundary(data: bytes, offset: int) -> bool:
    """True if offset does not fall inside a multi-byte UTF-8 sequence."""
    if offset <= 0 or offset >= len(data):
        return True
    # Continuation bytes look like 0b10xxxxxx
    return (data[offset] & 0xC0) != 0x80


def _next_end(data: bytes, start: int, chunk_size: int) -> int:
    """Pick the exclusive end offset of the chunk starting at start."""
    length = len(data)
    candidate = min(start + chunk_size, length)

    end = candidate
    while end > start and not is_char_boundary(data, end):
        end -= 1

    if end == start:
        # A single character is wider than chunk_size; take it whole.
        end = candidate
        while end < length and not is_char_boundary(data, end):
            end += 1

    return end


def chunk_content(
    observation_id: ObservationId,
    content: str,
    chunk_size: int,
) -> list[Chunk]:
    """
    Split content into consecutive chunks of at most chunk_size bytes.

    Offsets are UTF-8 byte offsets. Chunks cover the content with no gaps or
    overlaps, and a chunk only exceeds chunk_size when one character is
    itself wider than chunk_size.

    Args:
        observation_id: Owning observation
        content: Text to split
        chunk_size: Byte budget per chunk, must be positive

    Returns:
        Chunks ordered by index
    """
    if chunk_size <= 0:
        raise InvalidChunkSizeError(chunk_size)

    data = content.encode("utf-8")
    chunks = []
    start = 0
    index = 0

    while start < len(data):
        end = _next_end(data, start, chunk_size)
        chunks.append(
            Chunk(
                observation_id=observation_id,
                index=index,
                text=data[start:end].decode("utf-8"),
                start_offset=start,
                end_offset=end,
                token_estimate=DEFAULT_TOKEN_ESTIMATE,
            )
        )
        start = end
        index += 1

    return chunks


class ByteChunker:
    """Chunks observations using a fixed byte budget."""

    def __init__(self, chunk_size: int | None = None):
        settings = get_settings()
        self.chunk_size = settings.default_chunk_size if chunk_size is None else chunk_size
        if self.chunk_size <= 0:
            raise InvalidChunkSizeError(self.chunk_size)

    def chunk(self, observation: Observation, chunk_size: int | None = None) -> list[Chunk]:
        """Split an observation, optionally overriding the default size."""
        size = self.chunk_size if chunk_size is None else chunk_size
        return chunk_content(observation.id, observation.content, size)


# Singleton chunker instance
_chunker = None


def get_chunker() -> ByteChunker:
    """Get the singleton chunker instance."""
    global _chunker
    if _chunker is None:
        _chunker = ByteChunker()
    return _chunker
