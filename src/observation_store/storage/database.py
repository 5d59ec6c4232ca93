"""Database setup with SQLAlchemy async support (SQLite for local, Postgres for prod)."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, relationship

from observation_store.config import get_settings
from observation_store.errors import StoreError


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class ObservationORM(Base):
    """Observations table - one row per distinct content."""

    __tablename__ = "observations"

    id = Column(Uuid, primary_key=True)
    content_hash = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    source_url = Column(Text, nullable=True)
    source_kind = Column(String, nullable=False, default="unknown")
    created_at = Column(DateTime(timezone=True), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)

    chunks = relationship(
        "ChunkORM",
        back_populates="observation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("content_hash", name="uq_observations_content_hash"),
    )


class ChunkORM(Base):
    """Chunks table - byte ranges of an observation's content."""

    __tablename__ = "chunks"

    id = Column(Uuid, primary_key=True)
    observation_id = Column(
        Uuid, ForeignKey("observations.id", ondelete="CASCADE"), nullable=False
    )
    chunk_index = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    start_offset = Column(BigInteger, nullable=False)
    end_offset = Column(BigInteger, nullable=False)
    token_estimate = Column(Integer, nullable=False)

    observation = relationship("ObservationORM", back_populates="chunks")

    __table_args__ = (
        UniqueConstraint("observation_id", "chunk_index", name="uq_chunks_observation_index"),
        Index("idx_chunks_observation", "observation_id"),
    )


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _ensure_sqlite_dir(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(
    database_url: str | None = None,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    pool_timeout: float | None = None,
    **engine_kwargs,
) -> AsyncEngine:
    """
    Create an async engine with a bounded connection pool.

    Callers block for up to pool_timeout seconds when every pooled
    connection is checked out. Pool settings are skipped for SQLite.
    """
    settings = get_settings()
    db_url = database_url or settings.database_url

    kwargs = {"echo": settings.debug}

    # Pooling options should NOT be forced on SQLite.
    if not _is_sqlite(db_url):
        kwargs.update(
            {
                "pool_pre_ping": True,
                "pool_size": pool_size or settings.pool_size,
                "max_overflow": settings.max_overflow if max_overflow is None else max_overflow,
                "pool_timeout": pool_timeout or settings.pool_timeout,
            }
        )
    kwargs.update(engine_kwargs)

    if _is_sqlite(db_url):
        _ensure_sqlite_dir(db_url)

    engine = create_async_engine(db_url, **kwargs)

    if _is_sqlite(db_url):
        # SQLite only honours ON DELETE CASCADE with this pragma.
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def migrate(engine: AsyncEngine) -> None:
    """
    Create tables and constraints if they don't exist.

    Called once at startup by whoever owns the engine.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as exc:
        raise StoreError(f"migration failed: {exc}") from exc
