"""Chunk model and its embedding status."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from observation_store.models.ids import ChunkId, ObservationId

# Placeholder until a real tokenizer is wired in. Not an actual token count.
DEFAULT_TOKEN_ESTIMATE = 1


class Raw(BaseModel):
    """Chunk has not been embedded yet."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["raw"] = "raw"


class Embedded(BaseModel):
    """Chunk carries its embedding vector."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["embedded"] = "embedded"
    vector: tuple[float, ...]


ChunkStatus = Annotated[Union[Raw, Embedded], Field(discriminator="kind")]


class Chunk(BaseModel):
    """A contiguous, byte-offset-addressed slice of an observation's content."""

    model_config = ConfigDict(frozen=True)

    id: ChunkId = Field(default_factory=ChunkId.new)
    observation_id: ObservationId
    index: int = Field(ge=0)
    text: str
    start_offset: int = Field(ge=0)  # UTF-8 byte offset, inclusive
    end_offset: int = Field(ge=0)  # UTF-8 byte offset, exclusive
    token_estimate: int = Field(default=DEFAULT_TOKEN_ESTIMATE, ge=0)
    status: ChunkStatus = Field(default_factory=Raw)

    @model_validator(mode="after")
    def _offsets_match_text(self) -> Chunk:
        if self.end_offset <= self.start_offset:
            raise ValueError("chunk must span at least one byte")
        if len(self.text.encode("utf-8")) != self.end_offset - self.start_offset:
            raise ValueError("text length does not match offsets")
        return self

    @property
    def is_embedded(self) -> bool:
        return isinstance(self.status, Embedded)

    def with_embedding(self, vector) -> Chunk:
        """Return a copy of this chunk in the embedded state."""
        return self.model_copy(update={"status": Embedded(vector=tuple(vector))})
