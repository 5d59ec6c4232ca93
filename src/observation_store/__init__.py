"""observation-store: content-addressed ingestion and byte-offset chunking."""

__version__ = "0.1.0"
