"""Error taxonomy for validation, domain and storage failures."""


class ObservationStoreError(Exception):
    """Base class for every error raised by this package."""


# ===== Validation =====

class ValidationError(ObservationStoreError):
    """Input rejected before any I/O happens."""


class EmptyContentError(ValidationError):
    def __init__(self):
        super().__init__("content cannot be empty")


class ContentTooLargeError(ValidationError):
    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"content too large: {size} bytes (max: {max_size})")


class MissingFieldError(ValidationError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"missing required field: {field}")


class EmptyFieldError(ValidationError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"field cannot be empty: {field}")


class InvalidChunkSizeError(ValidationError):
    def __init__(self, chunk_size: int):
        self.chunk_size = chunk_size
        super().__init__(f"chunk size must be positive, got {chunk_size}")


class InvalidEncodingError(ValidationError):
    def __init__(self, source: str, position: int):
        self.source = source
        self.position = position
        super().__init__(f"{source} is not valid UTF-8 (byte {position})")


# ===== Domain =====

class ObservationError(ObservationStoreError):
    """Domain-level observation failures."""


class DuplicateObservationError(ObservationError):
    """
    Content with this hash is already stored.

    The dedup path reports duplicates through the ``inserted`` flag returned by
    ``upsert_observation`` and never raises this.
    """

    def __init__(self, content_hash: str):
        self.content_hash = content_hash
        super().__init__(f"duplicate observation with content hash {content_hash}")


# ===== Storage =====

class StoreError(ObservationStoreError):
    """Underlying connection, query or migration failure."""


class OutOfRangeError(StoreError):
    """A numeric value does not fit the width of its storage column."""

    def __init__(self, field: str, value: int | None = None):
        self.field = field
        self.value = value
        super().__init__(f"value out of range: {field}")
