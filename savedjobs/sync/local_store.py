"""Per-user persisted bookmark collections."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from savedjobs.db.rw_lock import AsyncRWLock
from savedjobs.domain.models import BookmarkCollection

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from savedjobs.sync.protocols import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "saved_jobs"


class BookmarkLocalStore:
    """Loads and persists one serialized ``BookmarkCollection`` per user.

    Every partition has its own read-write lock. ``edit`` holds the write
    lock across the whole read-modify-write, so two concurrent saves for the
    same user can never overwrite each other's result.

    Backend failures surface as ``LocalStorageError`` from the key/value store.
    """

    def __init__(self, store: KeyValueStore, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._store = store
        self.key_prefix = key_prefix
        self._locks: dict[str, AsyncRWLock] = {}

    def partition_key(self, user_id: str | int | None) -> str:
        """``<prefix>_<user_id>``, or the bare prefix when nobody is logged in."""
        if user_id is None or not str(user_id).strip():
            return self.key_prefix
        return f"{self.key_prefix}_{str(user_id).strip()}"

    def _lock(self, partition: str) -> AsyncRWLock:
        lock = self._locks.get(partition)
        if lock is None:
            lock = AsyncRWLock()
            self._locks[partition] = lock
        return lock

    async def read(self, partition: str) -> BookmarkCollection:
        async with self._lock(partition).read_lock():
            return await self._load(partition)

    async def write(self, partition: str, collection: BookmarkCollection) -> None:
        async with self._lock(partition).write_lock():
            await self._store.set(partition, collection.to_json())

    @asynccontextmanager
    async def edit(self, partition: str) -> AsyncIterator[BookmarkCollection]:
        """Yield the partition's collection for in-place mutation.

        The mutated collection is written back when the block exits without
        an exception; on error nothing is written.
        """
        async with self._lock(partition).write_lock():
            collection = await self._load(partition)
            yield collection
            await self._store.set(partition, collection.to_json())

    async def purge(self, partition: str) -> bool:
        async with self._lock(partition).write_lock():
            deleted = await self._store.delete(partition)
        logger.info("saved_jobs_partition_purged", extra={"partition": partition, "deleted": deleted})
        return deleted

    async def purge_all(self) -> int:
        """Delete every partition under this store's prefix (logout of all users)."""
        keys = await self._store.keys()
        owned = [
            key for key in keys if key == self.key_prefix or key.startswith(f"{self.key_prefix}_")
        ]
        purged = 0
        for key in owned:
            if await self.purge(key):
                purged += 1
        logger.info("saved_jobs_all_purged", extra={"count": purged})
        return purged

    async def _load(self, partition: str) -> BookmarkCollection:
        raw = await self._store.get(partition)
        if raw is None:
            return BookmarkCollection()
        try:
            return BookmarkCollection.from_json(raw)
        except ValueError as exc:
            logger.warning(
                "saved_jobs_payload_corrupt",
                extra={"partition": partition, "error": str(exc), "size": len(raw)},
            )
            return BookmarkCollection()
