"""Tests for the async persistence layer."""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from observation_store.errors import OutOfRangeError, StoreError
from observation_store.ingestion.chunker import chunk_content
from observation_store.models import (
    Chunk,
    ChunkId,
    ObservationId,
    ObservationSpec,
    SourceKind,
    build_observation,
)
from observation_store.storage import ChunkORM, ObservationORM, ObservationStore


def make_observation(content: str, **fields):
    return build_observation(ObservationSpec(content=content, **fields))


async def count_rows(store: ObservationStore, model) -> int:
    async with store.engine.connect() as conn:
        result = await conn.execute(select(func.count()).select_from(model))
        return result.scalar_one()


class TestUpsertObservation:
    async def test_first_insert_reports_inserted(self, store):
        obs = make_observation("first")
        observation_id, inserted = await store.upsert_observation(obs)
        assert inserted is True
        assert observation_id == obs.id

    async def test_duplicate_content_returns_existing_id(self, store):
        first = make_observation("same text", title="one")
        second = make_observation("same text", title="two")

        first_id, first_inserted = await store.upsert_observation(first)
        second_id, second_inserted = await store.upsert_observation(second)

        assert first_inserted is True
        assert second_inserted is False
        assert second_id == first_id
        assert await count_rows(store, ObservationORM) == 1

        # First writer's metadata wins
        stored = await store.get_observation(first_id)
        assert stored.title == "one"

    async def test_same_observation_twice(self, store):
        obs = make_observation("resubmitted")
        assert await store.upsert_observation(obs) == (obs.id, True)
        assert await store.upsert_observation(obs) == (obs.id, False)

    async def test_different_content_gets_different_rows(self, store):
        a_id, _ = await store.upsert_observation(make_observation("a"))
        b_id, _ = await store.upsert_observation(make_observation("b"))
        assert a_id != b_id
        assert await count_rows(store, ObservationORM) == 2

    async def test_concurrent_identical_ingest_converges(self, file_database_url):
        store = await ObservationStore.connect(file_database_url)
        await store.migrate()
        try:
            observations = [make_observation("raced content") for _ in range(5)]
            results = await asyncio.gather(
                *(store.upsert_observation(o) for o in observations)
            )
        finally:
            await store.close()

        ids = {observation_id for observation_id, _ in results}
        assert len(ids) == 1
        assert sum(inserted for _, inserted in results) == 1


class TestGetObservation:
    async def test_round_trip(self, store):
        published = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        obs = make_observation(
            "round trip é",
            title="Title",
            source_url="https://example.com",
            source_kind=SourceKind.WEB,
            published_at=published,
        )
        await store.upsert_observation(obs)

        loaded = await store.get_observation(obs.id)

        assert loaded.id == obs.id
        assert loaded.content == obs.content
        assert loaded.content_hash == obs.content_hash
        assert loaded.title == "Title"
        assert loaded.source_url == "https://example.com"
        assert loaded.source_kind is SourceKind.WEB
        assert loaded.created_at == obs.created_at
        assert loaded.published_at == published

    async def test_missing_returns_none(self, store):
        assert await store.get_observation(ObservationId.new()) is None

    async def test_unrecognized_stored_kind_becomes_unknown(self, store):
        obs = make_observation("legacy row")
        await store.upsert_observation(obs)
        async with store.engine.begin() as conn:
            await conn.execute(
                ObservationORM.__table__.update()
                .where(ObservationORM.id == obs.id.uuid)
                .values(source_kind="telegraph")
            )

        loaded = await store.get_observation(obs.id)
        assert loaded.source_kind is SourceKind.UNKNOWN


class TestChunks:
    async def _stored(self, store, content: str):
        obs = make_observation(content)
        await store.upsert_observation(obs)
        return obs

    async def test_upsert_and_list(self, store):
        obs = await self._stored(store, "hello world")
        chunks = chunk_content(obs.id, obs.content, 5)

        affected = await store.upsert_chunks(chunks)
        listed = await store.list_chunks(obs.id)

        assert affected == 3
        assert [(c.index, c.text, c.start_offset, c.end_offset) for c in listed] == [
            (0, "hello", 0, 5),
            (1, " worl", 5, 10),
            (2, "d", 10, 11),
        ]
        assert [c.id for c in listed] == [c.id for c in chunks]

    async def test_list_is_ordered_regardless_of_insert_order(self, store):
        obs = await self._stored(store, "abcdefghij")
        chunks = chunk_content(obs.id, obs.content, 2)

        await store.upsert_chunks(list(reversed(chunks)))
        listed = await store.list_chunks(obs.id)

        assert [c.index for c in listed] == [0, 1, 2, 3, 4]
        assert "".join(c.text for c in listed) == obs.content

    async def test_list_for_unknown_observation_is_empty(self, store):
        assert await store.list_chunks(ObservationId.new()) == []

    async def test_empty_batch(self, store):
        assert await store.upsert_chunks([]) == 0

    async def test_rechunk_overwrites_matching_indices(self, store):
        obs = await self._stored(store, "abcdefgh")
        await store.upsert_chunks(chunk_content(obs.id, obs.content, 2))
        original = await store.list_chunks(obs.id)

        await store.upsert_chunks(chunk_content(obs.id, obs.content, 3))
        listed = await store.list_chunks(obs.id)

        assert [(c.index, c.text, c.start_offset, c.end_offset) for c in listed] == [
            (0, "abc", 0, 3),
            (1, "def", 3, 6),
            (2, "gh", 6, 8),
        ]
        # Rows are updated in place, so ids at overlapping indices survive
        assert [c.id for c in listed] == [c.id for c in original[:3]]

    async def test_shorter_rechunk_removes_stale_rows(self, store):
        obs = await self._stored(store, "abcdefgh")
        await store.upsert_chunks(chunk_content(obs.id, obs.content, 1))
        assert await store.count_chunks(obs.id) == 8

        await store.upsert_chunks(chunk_content(obs.id, obs.content, 4))

        listed = await store.list_chunks(obs.id)
        assert [c.text for c in listed] == ["abcd", "efgh"]
        assert await store.count_chunks(obs.id) == 2

    async def test_sparse_batch_removes_only_rows_past_highest_index(self, store):
        obs = await self._stored(store, "abcdefgh")
        await store.upsert_chunks(chunk_content(obs.id, obs.content, 1))

        third = chunk_content(obs.id, obs.content, 1)[2]
        assert await store.upsert_chunks([third]) == 1

        listed = await store.list_chunks(obs.id)
        assert [c.index for c in listed] == [0, 1, 2]
        assert [c.text for c in listed] == ["a", "b", "c"]

    async def test_stale_cleanup_only_touches_batch_observations(self, store):
        a = await self._stored(store, "aaaa")
        b = await self._stored(store, "bbbb")
        await store.upsert_chunks(chunk_content(a.id, a.content, 1))
        await store.upsert_chunks(chunk_content(b.id, b.content, 1))

        await store.upsert_chunks(chunk_content(a.id, a.content, 4))

        assert await store.count_chunks(a.id) == 1
        assert await store.count_chunks(b.id) == 4

    async def test_out_of_range_offset_rolls_back_whole_batch(self, store):
        obs = await self._stored(store, "abcdef")
        await store.upsert_chunks(chunk_content(obs.id, obs.content, 2))
        before = await store.list_chunks(obs.id)

        good = chunk_content(obs.id, obs.content, 3)
        too_big = Chunk.model_construct(
            id=ChunkId.new(),
            observation_id=obs.id,
            index=2,
            text="x",
            start_offset=2**63,
            end_offset=2**63 + 1,
            token_estimate=1,
        )

        with pytest.raises(OutOfRangeError) as exc_info:
            await store.upsert_chunks(good + [too_big])

        assert exc_info.value.field == "start_offset"
        assert isinstance(exc_info.value, StoreError)
        after = await store.list_chunks(obs.id)
        assert [(c.index, c.text) for c in after] == [(c.index, c.text) for c in before]

    async def test_out_of_range_token_estimate(self, store):
        obs = await self._stored(store, "abc")
        chunk = Chunk.model_construct(
            id=ChunkId.new(),
            observation_id=obs.id,
            index=0,
            text="abc",
            start_offset=0,
            end_offset=3,
            token_estimate=2**31,
        )
        with pytest.raises(OutOfRangeError) as exc_info:
            await store.upsert_chunks([chunk])
        assert exc_info.value.field == "token_estimate"
        assert await count_rows(store, ChunkORM) == 0

    async def test_chunks_for_missing_observation_fail_atomically(self, store):
        orphan = chunk_content(ObservationId.new(), "abcd", 2)
        with pytest.raises(StoreError):
            await store.upsert_chunks(orphan)
        assert await count_rows(store, ChunkORM) == 0


class TestConnect:
    async def test_unreachable_database_raises_store_error(self, tmp_path):
        missing_dir_file = tmp_path / "not-a-dir"
        missing_dir_file.write_text("")
        url = f"sqlite+aiosqlite:///{missing_dir_file / 'db.sqlite'}"
        with pytest.raises((StoreError, OSError)):
            await ObservationStore.connect(url)
