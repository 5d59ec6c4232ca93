"""Repository pattern for database operations."""

from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from observation_store.errors import OutOfRangeError, StoreError
from observation_store.models.chunk import Chunk
from observation_store.models.ids import ChunkId, ObservationId
from observation_store.models.observation import (
    Observation,
    ObservationSpec,
    SourceKind,
    build_observation,
)
from observation_store.storage.database import ChunkORM, ObservationORM

INT32_MAX = 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


def _insert_for(session: AsyncSession):
    """Dialect-specific insert() so ON CONFLICT clauses are available."""
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise StoreError(f"unsupported database dialect: {dialect}")


def _as_utc(value: datetime | None) -> datetime | None:
    """Normalize to aware UTC. SQLite hands back naive datetimes stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_range(field: str, value: int, low: int, high: int) -> int:
    if not low <= value <= high:
        raise OutOfRangeError(field, value)
    return value


class ObservationRepository:
    """Repository for observation persistence. The caller owns the transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(self, observation: Observation) -> tuple[ObservationId, bool]:
        """
        Insert unless content with the same hash already exists.

        The unique constraint on content_hash decides the winner; a losing
        (or concurrent) inserter looks the existing row up by hash.

        Returns:
            (id of the stored row, True if this call inserted it)
        """
        content_hash = observation.content_hash.to_hex()
        insert = _insert_for(self.session)

        stmt = (
            insert(ObservationORM)
            .values(
                id=observation.id.uuid,
                content_hash=content_hash,
                content=observation.content,
                title=observation.title,
                source_url=observation.source_url,
                source_kind=observation.source_kind.value,
                created_at=_as_utc(observation.created_at),
                published_at=_as_utc(observation.published_at),
            )
            .on_conflict_do_nothing()
            .returning(ObservationORM.id)
        )
        result = await self.session.execute(stmt)
        inserted_id = result.scalar_one_or_none()
        if inserted_id is not None:
            return ObservationId.from_uuid(inserted_id), True

        existing_id = await self.get_id_by_hash(content_hash)
        if existing_id is None:
            raise StoreError(f"observation insert conflicted but no row has hash {content_hash}")
        return existing_id, False

    async def get_id_by_hash(self, content_hash: str) -> ObservationId | None:
        result = await self.session.execute(
            select(ObservationORM.id).where(ObservationORM.content_hash == content_hash)
        )
        found = result.scalar_one_or_none()
        return ObservationId.from_uuid(found) if found is not None else None

    async def get(self, observation_id: ObservationId) -> Observation | None:
        """Get an observation by ID."""
        result = await self.session.execute(
            select(ObservationORM).where(ObservationORM.id == observation_id.uuid)
        )
        orm = result.scalar_one_or_none()
        return self._to_model(orm) if orm else None

    def _to_model(self, orm: ObservationORM) -> Observation:
        spec = ObservationSpec(
            id=ObservationId.from_uuid(orm.id),
            content=orm.content,
            title=orm.title,
            source_url=orm.source_url,
            source_kind=SourceKind.parse(orm.source_kind),
            created_at=_as_utc(orm.created_at),
            published_at=_as_utc(orm.published_at),
        )
        return build_observation(spec, enforce_limits=False)


class ChunkRepository:
    """Repository for chunk persistence. The caller owns the transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_many(self, chunks: list[Chunk]) -> int:
        """
        Insert or overwrite chunks keyed by (observation_id, chunk_index).

        Rows of the same observation with an index past the highest one in
        this batch are deleted, so a shorter re-chunk leaves nothing stale.

        Returns:
            Number of chunk rows inserted or updated
        """
        rows = [self._to_row(chunk) for chunk in chunks]
        if not rows:
            return 0

        insert = _insert_for(self.session)
        affected = 0
        last_index: dict = defaultdict(int)

        for row in rows:
            stmt = insert(ChunkORM).values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ChunkORM.observation_id, ChunkORM.chunk_index],
                set_={
                    "text": stmt.excluded.text,
                    "start_offset": stmt.excluded.start_offset,
                    "end_offset": stmt.excluded.end_offset,
                    "token_estimate": stmt.excluded.token_estimate,
                },
            )
            result = await self.session.execute(stmt)
            affected += result.rowcount
            owner = row["observation_id"]
            last_index[owner] = max(last_index[owner], row["chunk_index"])

        for observation_uuid, max_index in last_index.items():
            await self.session.execute(
                delete(ChunkORM).where(
                    ChunkORM.observation_id == observation_uuid,
                    ChunkORM.chunk_index > max_index,
                )
            )

        return affected

    async def get_by_observation(self, observation_id: ObservationId) -> list[Chunk]:
        """Get all chunks for an observation, ordered by index."""
        result = await self.session.execute(
            select(ChunkORM)
            .where(ChunkORM.observation_id == observation_id.uuid)
            .order_by(ChunkORM.chunk_index.asc())
        )
        return [self._to_model(orm) for orm in result.scalars()]

    async def count_by_observation(self, observation_id: ObservationId) -> int:
        result = await self.session.execute(
            select(func.count(ChunkORM.id)).where(ChunkORM.observation_id == observation_id.uuid)
        )
        return result.scalar() or 0

    def _to_row(self, chunk: Chunk) -> dict:
        """Column values for a chunk, rejecting numbers the columns cannot hold."""
        return {
            "id": chunk.id.uuid,
            "observation_id": chunk.observation_id.uuid,
            "chunk_index": _check_range("chunk_index", chunk.index, 0, INT32_MAX),
            "text": chunk.text,
            "start_offset": _check_range("start_offset", chunk.start_offset, INT64_MIN, INT64_MAX),
            "end_offset": _check_range("end_offset", chunk.end_offset, INT64_MIN, INT64_MAX),
            "token_estimate": _check_range("token_estimate", chunk.token_estimate, 0, INT32_MAX),
        }

    def _to_model(self, orm: ChunkORM) -> Chunk:
        return Chunk(
            id=ChunkId.from_uuid(orm.id),
            observation_id=ObservationId.from_uuid(orm.observation_id),
            index=_check_range("chunk_index", orm.chunk_index, 0, INT32_MAX),
            text=orm.text,
            start_offset=_check_range("start_offset", orm.start_offset, 0, INT64_MAX),
            end_offset=_check_range("end_offset", orm.end_offset, 0, INT64_MAX),
            token_estimate=_check_range("token_estimate", orm.token_estimate, 0, INT32_MAX),
        )
