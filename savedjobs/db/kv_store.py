"""Key/value backends for serialized bookmark collections."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import peewee

from savedjobs.domain.exceptions import LocalStorageError

if TYPE_CHECKING:
    from savedjobs.db.session import DatabaseSessionManager


class InMemoryKeyValueStore:
    """Process-local store; contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0)
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        await asyncio.sleep(0)
        return self._data.pop(key, None) is not None

    async def keys(self) -> list[str]:
        await asyncio.sleep(0)
        return list(self._data)


class SqliteKeyValueStore:
    """Durable store backed by the peewee ``stored_collections`` table."""

    def __init__(self, db: DatabaseSessionManager) -> None:
        self._db = db

    async def get(self, key: str) -> str | None:
        try:
            return await self._db.async_get_payload(key)
        except (peewee.PeeweeException, TimeoutError) as exc:
            raise LocalStorageError(
                f"Failed to read saved jobs: {exc}", details={"key": key}
            ) from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await self._db.async_set_payload(key, value)
        except (peewee.PeeweeException, TimeoutError) as exc:
            raise LocalStorageError(
                f"Failed to write saved jobs: {exc}", details={"key": key}
            ) from exc

    async def delete(self, key: str) -> bool:
        try:
            return await self._db.async_delete_payload(key)
        except (peewee.PeeweeException, TimeoutError) as exc:
            raise LocalStorageError(
                f"Failed to delete saved jobs: {exc}", details={"key": key}
            ) from exc

    async def keys(self) -> list[str]:
        try:
            return await self._db.async_list_keys()
        except (peewee.PeeweeException, TimeoutError) as exc:
            raise LocalStorageError(f"Failed to list saved jobs keys: {exc}") from exc
