"""Database session management for the on-device saved-jobs store.

``DatabaseSessionManager`` owns the SQLite connection and runs every peewee
call in a worker thread with a timeout, retrying while SQLite reports the
database as locked or busy.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import peewee
from playhouse.sqlite_ext import SqliteExtDatabase

from savedjobs.core.time_utils import utc_now
from savedjobs.db.models import ALL_MODELS, StoredCollection, database_proxy
from savedjobs.db.rw_lock import AsyncRWLock

DB_OPERATION_TIMEOUT = 10.0
DB_MAX_RETRIES = 3


@dataclass
class DatabaseSessionManager:
    """Peewee-backed session manager for the saved-jobs database.

    Attributes:
        path: Path to the SQLite database file, or ":memory:" for an ephemeral store
        operation_timeout: Default timeout for database operations in seconds
        max_retries: Maximum retries while the database is locked or busy
    """

    path: str
    operation_timeout: float = field(default=DB_OPERATION_TIMEOUT)
    max_retries: int = field(default=DB_MAX_RETRIES)
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)
    _rw_lock: AsyncRWLock = field(init=False)
    _in_memory: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self._in_memory = self.path == ":memory:"
        if not self._in_memory:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._database = SqliteExtDatabase(
                self.path,
                pragmas={"journal_mode": "wal", "synchronous": "normal"},
                check_same_thread=False,
            )
        else:
            # An in-memory database lives only as long as its single connection.
            self._database = SqliteExtDatabase(
                self.path, thread_safe=False, check_same_thread=False
            )
            self._database.connect()
        database_proxy.initialize(self._database)
        self._rw_lock = AsyncRWLock()

    @property
    def database(self) -> peewee.SqliteDatabase:
        return self._database

    def connection_context(self) -> Any:
        if self._in_memory:
            return contextlib.nullcontext()
        return self._database.connection_context()

    def migrate(self) -> None:
        """Create tables if they do not exist yet."""
        with self.connection_context():
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": self._mask_path(self.path)})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()

    async def _safe_db_operation(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Execute a database operation with timeout and lock/busy retry.

        Raises:
            TimeoutError: If the operation times out
            peewee.PeeweeException: If the database stays locked or another error occurs
        """
        if timeout is None:
            timeout = self.operation_timeout

        retries = 0
        while True:
            try:

                async def _run_with_lock() -> Any:
                    def _op_wrapper() -> Any:
                        with self.connection_context():
                            return operation(*args, **kwargs)

                    if read_only:
                        return await asyncio.to_thread(_op_wrapper)

                    async with self._rw_lock.write_lock():
                        return await asyncio.to_thread(_op_wrapper)

                return await asyncio.wait_for(_run_with_lock(), timeout=timeout)

            except TimeoutError:
                self._logger.exception(
                    "db_operation_timeout",
                    extra={"operation": operation_name, "timeout": timeout, "retries": retries},
                )
                raise

            except peewee.OperationalError as e:
                error_msg = str(e).lower()
                if ("locked" in error_msg or "busy" in error_msg) and retries < self.max_retries:
                    retries += 1
                    wait_time = 0.1 * (2**retries)
                    self._logger.warning(
                        "db_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(wait_time)
                    continue

                self._logger.exception(
                    "db_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(e)},
                )
                raise

    async def async_get_payload(self, key: str) -> str | None:
        def _get() -> str | None:
            row = StoredCollection.get_or_none(StoredCollection.key == key)
            return row.payload if row else None

        return await self._safe_db_operation(_get, operation_name="get_payload", read_only=True)

    async def async_set_payload(self, key: str, payload: str) -> None:
        def _set() -> None:
            now = utc_now()
            (
                StoredCollection.insert(key=key, payload=payload, created_at=now, updated_at=now)
                .on_conflict(
                    conflict_target=[StoredCollection.key],
                    update={StoredCollection.payload: payload, StoredCollection.updated_at: now},
                )
                .execute()
            )

        await self._safe_db_operation(_set, operation_name="set_payload")

    async def async_delete_payload(self, key: str) -> bool:
        def _delete() -> bool:
            return StoredCollection.delete().where(StoredCollection.key == key).execute() > 0

        return await self._safe_db_operation(_delete, operation_name="delete_payload")

    async def async_list_keys(self) -> list[str]:
        def _keys() -> list[str]:
            return [row.key for row in StoredCollection.select(StoredCollection.key)]

        return await self._safe_db_operation(_keys, operation_name="list_keys", read_only=True)

    @staticmethod
    def _mask_path(path: str) -> str:
        if path == ":memory:":
            return path
        return f".../{Path(path).name}"
