"""Content hashes and time-ordered entity identifiers."""

from __future__ import annotations

import hashlib
import secrets
import string
import threading
import time
import uuid
from functools import total_ordering
from typing import Any, ClassVar

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic_core import core_schema

_HEX_DIGITS = frozenset(string.hexdigits)

_uuid7_lock = threading.Lock()
_last_ms = 0
_counter = 0


def uuid7() -> uuid.UUID:
    """
    Generate a UUIDv7 (RFC 9562).

    48-bit Unix millisecond timestamp followed by a 12-bit counter seeded
    randomly each millisecond, so ids from one process sort in creation order.
    """
    global _last_ms, _counter

    with _uuid7_lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _last_ms:
            _last_ms = now_ms
            _counter = secrets.randbits(11)
        else:
            # Same millisecond or clock went backwards: keep counting.
            _counter += 1
            if _counter > 0xFFF:
                _last_ms += 1
                _counter = 0
        ms, counter = _last_ms, _counter

    value = (
        (ms & 0xFFFF_FFFF_FFFF) << 80
        | 0x7 << 76
        | counter << 64
        | 0b10 << 62
        | secrets.randbits(62)
    )
    return uuid.UUID(int=value)


@total_ordering
class EntityId:
    """
    Unique identifier tagged with the kind of entity it belongs to.

    Subclasses only fix ``entity``; two ids are equal when both the tag and
    the UUID match, so an ObservationId never equals a ChunkId.
    """

    __slots__ = ("_uuid",)

    entity: ClassVar[str] = "entity"

    def __init__(self, value: uuid.UUID):
        if not isinstance(value, uuid.UUID):
            raise TypeError(f"{type(self).__name__} expects a UUID, got {type(value).__name__}")
        self._uuid = value

    @classmethod
    def new(cls):
        """Create a fresh, time-ordered id."""
        return cls(uuid7())

    @classmethod
    def from_uuid(cls, value: uuid.UUID):
        return cls(value)

    @classmethod
    def parse(cls, value: str):
        """Parse the canonical string form. Raises ValueError on bad input."""
        return cls(uuid.UUID(value.strip()))

    @property
    def uuid(self) -> uuid.UUID:
        return self._uuid

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntityId):
            return NotImplemented
        return self.entity == other.entity and self._uuid == other._uuid

    def __lt__(self, other: EntityId) -> bool:
        if not isinstance(other, EntityId) or other.entity != self.entity:
            return NotImplemented
        return self._uuid < other._uuid

    def __hash__(self) -> int:
        return hash((self.entity, self._uuid))

    def __str__(self) -> str:
        return str(self._uuid)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._uuid.hex[:8]})"

    @classmethod
    def _validate(cls, value: Any):
        if isinstance(value, cls):
            return value
        if isinstance(value, EntityId):
            raise ValueError(f"expected {cls.entity} id, got {value.entity} id")
        if isinstance(value, uuid.UUID):
            return cls(value)
        if isinstance(value, str):
            return cls.parse(value)
        raise ValueError(f"cannot build {cls.__name__} from {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> dict[str, Any]:
        return {"type": "string", "format": "uuid"}


class ObservationId(EntityId):
    __slots__ = ()
    entity = "observation"


class ChunkId(EntityId):
    __slots__ = ()
    entity = "chunk"


class ContentHash:
    """SHA-256 digest of raw content bytes, used only as the dedup key."""

    __slots__ = ("_digest",)

    DIGEST_SIZE = 32

    def __init__(self, digest: bytes):
        if len(digest) != self.DIGEST_SIZE:
            raise ValueError(f"invalid hash length: {len(digest)} bytes")
        self._digest = bytes(digest)

    @classmethod
    def from_bytes(cls, content: bytes) -> ContentHash:
        return cls(hashlib.sha256(content).digest())

    @classmethod
    def from_content(cls, content: str) -> ContentHash:
        return cls.from_bytes(content.encode("utf-8"))

    @classmethod
    def from_hex(cls, value: str) -> ContentHash:
        if len(value) != 2 * cls.DIGEST_SIZE or not _HEX_DIGITS.issuperset(value):
            raise ValueError(f"invalid hex digest: {value!r}")
        return cls(bytes.fromhex(value))

    @property
    def digest(self) -> bytes:
        return self._digest

    def to_hex(self) -> str:
        return self._digest.hex()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContentHash):
            return NotImplemented
        return self._digest == other._digest

    def __hash__(self) -> int:
        return hash(self._digest)

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"ContentHash({self.to_hex()[:16]})"

    @classmethod
    def _validate(cls, value: Any) -> ContentHash:
        if isinstance(value, ContentHash):
            return value
        if isinstance(value, str):
            return cls.from_hex(value)
        raise ValueError(f"cannot build ContentHash from {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> dict[str, Any]:
        return {"type": "string", "pattern": "^[0-9a-f]{64}$"}


def compute_content_hash(content: str) -> str:
    """Compute SHA256 hash of content as hex."""
    return ContentHash.from_content(content).to_hex()
