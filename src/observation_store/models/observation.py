"""Observation aggregate and its validated construction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from observation_store.config import get_settings
from observation_store.errors import (
    ContentTooLargeError,
    EmptyContentError,
    EmptyFieldError,
    MissingFieldError,
)
from observation_store.models.ids import ContentHash, ObservationId


class SourceKind(str, Enum):
    """Where an observation came from."""

    RSS = "rss"
    PDF = "pdf"
    WEB = "web"
    TEXT = "text"
    MANUAL = "manual"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | SourceKind | None) -> SourceKind:
        """Lenient parse: anything unrecognized becomes UNKNOWN."""
        if isinstance(value, SourceKind):
            return value
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Observation(BaseModel):
    """An immutable ingested document with content-addressed identity."""

    model_config = ConfigDict(frozen=True)

    id: ObservationId
    content_hash: ContentHash
    content: str
    title: str | None = None
    source_url: str | None = None
    source_kind: SourceKind = SourceKind.UNKNOWN
    created_at: datetime
    published_at: datetime | None = None

    @model_validator(mode="after")
    def _hash_matches_content(self) -> Observation:
        if ContentHash.from_content(self.content) != self.content_hash:
            raise ValueError("content_hash does not match content")
        return self

    @property
    def content_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    def chunk(self, chunk_size: int):
        """Split this observation's content into chunks of at most chunk_size bytes."""
        from observation_store.ingestion.chunker import chunk_content

        return chunk_content(self.id, self.content, chunk_size)


@dataclass
class ObservationSpec:
    """
    Inputs for building an Observation.

    ``id`` and ``created_at`` are only set when reconstructing a stored row.
    """

    content: str | None = None
    title: str | None = None
    source_url: str | None = None
    source_kind: SourceKind | str = SourceKind.UNKNOWN
    published_at: datetime | None = None
    id: ObservationId | None = None
    created_at: datetime | None = None


def build_observation(
    spec: ObservationSpec,
    max_content_bytes: int | None = None,
    enforce_limits: bool = True,
) -> Observation:
    """
    Validate a spec and build the Observation.

    Validation order: missing content, blank content, size ceiling, blank
    optional fields. The hash is computed from the untrimmed content.

    Args:
        spec: Field values for the new observation
        max_content_bytes: Size ceiling, defaults to the configured one
        enforce_limits: False when rebuilding rows that were already accepted

    Raises:
        MissingFieldError, EmptyContentError, ContentTooLargeError, EmptyFieldError
    """
    content = spec.content
    if content is None:
        raise MissingFieldError("content")

    if not content.strip():
        raise EmptyContentError()

    if enforce_limits:
        limit = get_settings().max_content_bytes if max_content_bytes is None else max_content_bytes
        size = len(content.encode("utf-8"))
        if size > limit:
            raise ContentTooLargeError(size, limit)

        for field in ("title", "source_url"):
            value = getattr(spec, field)
            if value is not None and not value.strip():
                raise EmptyFieldError(field)

    return Observation(
        id=spec.id or ObservationId.new(),
        content_hash=ContentHash.from_content(content),
        content=content,
        title=spec.title,
        source_url=spec.source_url,
        source_kind=SourceKind.parse(spec.source_kind),
        created_at=spec.created_at or datetime.now(timezone.utc),
        published_at=spec.published_at,
    )
