"""Pytest configuration and shared fixtures.

This module provides the in-memory fakes used across the saved-jobs tests.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from savedjobs.adapters.saved_jobs_api.outcomes import Success
from savedjobs.db.kv_store import InMemoryKeyValueStore
from savedjobs.domain.exceptions import LocalStorageError
from savedjobs.domain.models import Bookmark
from savedjobs.services.identity import StaticIdentityResolver
from savedjobs.services.saved_jobs_service import SavedJobsService
from savedjobs.sync.local_store import BookmarkLocalStore

BASE_TIME = datetime(2025, 3, 1, 9, 0, 0, tzinfo=UTC)


def make_bookmark(job_id: int, **overrides: Any) -> Bookmark:
    data: dict[str, Any] = {
        "job_id": job_id,
        "title": f"Job {job_id}",
        "company_name": "Acme",
        "city": "Istanbul",
        "country": "TR",
        "saved_at": BASE_TIME + timedelta(minutes=job_id % 1000),
    }
    data.update(overrides)
    return Bookmark(**data)


class FakeRemote:
    """In-memory saved-jobs API that records every call.

    ``*_outcome`` attributes force a fixed outcome; ``list_gate`` blocks
    ``list()`` until the test sets it.
    """

    def __init__(self, bookmarks: list[Bookmark] | None = None) -> None:
        self.server: dict[int, Bookmark] = {b.job_id: b for b in bookmarks or []}
        self.list_outcome: Any = None
        self.create_outcome: Any = None
        self.remove_outcome: Any = None
        self.list_gate: asyncio.Event | None = None
        self.calls: list[tuple[str, int | None]] = []

    @property
    def mutations(self) -> list[tuple[str, int | None]]:
        return [call for call in self.calls if call[0] != "list"]

    async def list(self) -> Any:
        self.calls.append(("list", None))
        # Like the real parser, an entry without a save time is stamped "now".
        now = datetime.now(UTC)
        snapshot = [
            b.model_copy(update={} if b.saved_at_known else {"saved_at": now})
            for b in self.server.values()
        ]
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_outcome is not None:
            return self.list_outcome
        return Success(snapshot)

    async def create(self, job_id: int) -> Any:
        self.calls.append(("create", job_id))
        if self.create_outcome is not None:
            return self.create_outcome
        self.server.setdefault(job_id, Bookmark(job_id=job_id, title="", saved_at_known=False))
        return Success(job_id)

    async def remove(self, job_id: int) -> Any:
        self.calls.append(("remove", job_id))
        if self.remove_outcome is not None:
            return self.remove_outcome
        self.server.pop(job_id, None)
        return Success(job_id)


class FailingKeyValueStore(InMemoryKeyValueStore):
    """Key/value store whose reads and/or writes raise ``LocalStorageError``."""

    def __init__(self, *, fail_reads: bool = False, fail_writes: bool = True) -> None:
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise LocalStorageError("disk unavailable", details={"key": key})
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise LocalStorageError("disk full", details={"key": key})
        await super().set(key, value)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def local_store(kv_store: InMemoryKeyValueStore) -> BookmarkLocalStore:
    return BookmarkLocalStore(kv_store)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def identity() -> StaticIdentityResolver:
    return StaticIdentityResolver("42")


@pytest.fixture
def service(
    local_store: BookmarkLocalStore, remote: FakeRemote, identity: StaticIdentityResolver
) -> SavedJobsService:
    return SavedJobsService(local_store, remote, identity, focus_min_interval_sec=30.0)
