"""Tests for BookmarkLocalStore partitioning, editing and purging."""

from __future__ import annotations

import asyncio

import pytest

from savedjobs.db.kv_store import InMemoryKeyValueStore
from savedjobs.domain.exceptions import LocalStorageError
from savedjobs.domain.models import BookmarkCollection
from savedjobs.sync.local_store import BookmarkLocalStore
from tests.conftest import BASE_TIME, FailingKeyValueStore, make_bookmark


def test_partition_key_per_user(local_store):
    assert local_store.partition_key("42") == "saved_jobs_42"
    assert local_store.partition_key(7) == "saved_jobs_7"


def test_partition_key_without_user_is_anonymous(local_store):
    assert local_store.partition_key(None) == "saved_jobs"
    assert local_store.partition_key("  ") == "saved_jobs"


def test_custom_prefix():
    store = BookmarkLocalStore(InMemoryKeyValueStore(), key_prefix="bookmarks")
    assert store.partition_key("1") == "bookmarks_1"


@pytest.mark.asyncio
async def test_read_missing_partition_is_empty(local_store):
    collection = await local_store.read("saved_jobs_42")
    assert len(collection) == 0
    assert collection.pending_removals == {}


@pytest.mark.asyncio
async def test_edit_persists_on_clean_exit(local_store, kv_store):
    async with local_store.edit("saved_jobs_42") as collection:
        collection.upsert(make_bookmark(1))

    assert (await local_store.read("saved_jobs_42")).job_ids() == {1}
    assert await kv_store.get("saved_jobs_42") is not None


@pytest.mark.asyncio
async def test_edit_discards_changes_on_error(local_store):
    await local_store.write("saved_jobs_42", BookmarkCollection())

    with pytest.raises(RuntimeError):
        async with local_store.edit("saved_jobs_42") as collection:
            collection.upsert(make_bookmark(1))
            raise RuntimeError("abort")

    assert len(await local_store.read("saved_jobs_42")) == 0


@pytest.mark.asyncio
async def test_partitions_are_isolated(local_store):
    async with local_store.edit("saved_jobs_1") as collection:
        collection.upsert(make_bookmark(10))
    async with local_store.edit("saved_jobs_2") as collection:
        collection.upsert(make_bookmark(20))

    assert (await local_store.read("saved_jobs_1")).job_ids() == {10}
    assert (await local_store.read("saved_jobs_2")).job_ids() == {20}


@pytest.mark.asyncio
async def test_corrupt_payload_reads_as_empty(kv_store, local_store):
    await kv_store.set("saved_jobs_42", "{broken json")
    assert len(await local_store.read("saved_jobs_42")) == 0


@pytest.mark.asyncio
async def test_legacy_array_payload_is_readable(kv_store, local_store):
    await kv_store.set(
        "saved_jobs_42",
        '[{"id": 3, "title": "Legacy", "savedAt": "2024-05-01T10:00:00.000Z"}]',
    )
    collection = await local_store.read("saved_jobs_42")
    assert collection.job_ids() == {3}
    assert collection.get(3).title == "Legacy"


@pytest.mark.asyncio
async def test_concurrent_edits_do_not_lose_updates(local_store):
    """Two saves racing on one partition must both be persisted."""

    async def save(job_id: int) -> None:
        async with local_store.edit("saved_jobs_42") as collection:
            await asyncio.sleep(0.01)
            collection.upsert(make_bookmark(job_id))

    await asyncio.gather(*(save(job_id) for job_id in range(1, 11)))

    assert (await local_store.read("saved_jobs_42")).job_ids() == set(range(1, 11))


@pytest.mark.asyncio
async def test_purge_removes_only_that_partition(local_store):
    for partition in ("saved_jobs_1", "saved_jobs_2"):
        async with local_store.edit(partition) as collection:
            collection.upsert(make_bookmark(1, saved_at=BASE_TIME))

    assert await local_store.purge("saved_jobs_1") is True
    assert await local_store.purge("saved_jobs_1") is False
    assert len(await local_store.read("saved_jobs_2")) == 1


@pytest.mark.asyncio
async def test_purge_all_only_touches_prefixed_keys(kv_store, local_store):
    await kv_store.set("saved_jobs", "[]")
    await kv_store.set("saved_jobs_1", "[]")
    await kv_store.set("saved_jobs_2", "[]")
    await kv_store.set("saved_jobsx", "[]")
    await kv_store.set("other_setting", "1")

    assert await local_store.purge_all() == 3
    assert sorted(await kv_store.keys()) == ["other_setting", "saved_jobsx"]


@pytest.mark.asyncio
async def test_storage_failures_propagate():
    store = BookmarkLocalStore(FailingKeyValueStore(fail_reads=True))

    with pytest.raises(LocalStorageError):
        await store.read("saved_jobs_1")

    with pytest.raises(LocalStorageError):
        async with store.edit("saved_jobs_1"):
            pass
