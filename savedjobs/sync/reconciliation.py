"""Reconciliation of a local bookmark collection with the remote list.

The pure planning step decides what the converged collection looks like and
which remote calls are needed; ``ReconciliationEngine`` runs it against the
local store and the remote API.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from savedjobs.adapters.saved_jobs_api.outcomes import (
    AuthFailure,
    EndpointUnavailable,
    Success,
    TransientFailure,
    describe_outcome,
)
from savedjobs.core.logging_utils import generate_correlation_id
from savedjobs.core.time_utils import utc_now
from savedjobs.domain.models import SNAPSHOT_FIELDS, Bookmark, BookmarkCollection, is_empty
from savedjobs.sync.errors import record_error
from savedjobs.sync.models import SyncResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from savedjobs.sync.local_store import BookmarkLocalStore
    from savedjobs.sync.protocols import BookmarkRemote

logger = logging.getLogger(__name__)


def merge_bookmarks(local: Bookmark, remote: Bookmark) -> Bookmark:
    """Combine two copies of the same bookmark field by field.

    A non-empty value beats an empty one; when both sides have a value the
    local one wins. ``saved_at`` keeps the earliest timestamp the server
    actually reported.
    """
    updates: dict[str, object] = {}
    for name in SNAPSHOT_FIELDS:
        if is_empty(getattr(local, name)) and not is_empty(getattr(remote, name)):
            updates[name] = getattr(remote, name)

    if local.saved_at_known and remote.saved_at_known:
        updates["saved_at"] = min(local.saved_at, remote.saved_at)
    elif remote.saved_at_known:
        updates["saved_at"] = remote.saved_at
    updates["saved_at_known"] = local.saved_at_known or remote.saved_at_known
    confirmations = [ts for ts in (local.synced_at, remote.synced_at) if ts is not None]
    updates["synced_at"] = max(confirmations) if confirmations else None
    return local.model_copy(update=updates)


@dataclass
class ReconciliationPlan:
    converged: BookmarkCollection
    to_create: list[int] = field(default_factory=list)
    to_remove: list[int] = field(default_factory=list)
    adopted: list[int] = field(default_factory=list)
    merged: list[int] = field(default_factory=list)
    dropped: list[int] = field(default_factory=list)

    @property
    def needs_remote_calls(self) -> bool:
        return bool(self.to_create or self.to_remove)


def _index_remote(remote: Iterable[Bookmark]) -> dict[int, Bookmark]:
    indexed: dict[int, Bookmark] = {}
    for bookmark in remote:
        existing = indexed.get(bookmark.job_id)
        indexed[bookmark.job_id] = (
            bookmark if existing is None else merge_bookmarks(existing, bookmark)
        )
    return indexed


def _saved_after(bookmark: Bookmark, moment: datetime) -> bool:
    """Only a reported save timestamp can outrank a local unsave."""
    return bookmark.saved_at_known and bookmark.saved_at > moment


def plan_reconciliation(
    local: BookmarkCollection,
    remote: Iterable[Bookmark],
    *,
    snapshot_at: datetime,
    adopt_remote_deletions: bool = True,
) -> ReconciliationPlan:
    """Compute the converged collection and the remote calls that follow.

    ``snapshot_at`` is when the remote list was requested. A local bookmark
    confirmed on the server before that moment but missing from the list was
    removed elsewhere; anything never confirmed (or confirmed later) is pushed.
    Remote bookmarks are never removed because they are absent locally: only
    explicit unsaves (``pending_removals``) produce removals.
    """
    remote_by_id = _index_remote(remote)
    converged = BookmarkCollection(pending_removals=dict(local.pending_removals))
    plan = ReconciliationPlan(converged=converged)

    for job_id, bookmark in local.bookmarks.items():
        remote_copy = remote_by_id.get(job_id)
        if remote_copy is not None:
            merged = merge_bookmarks(bookmark, remote_copy)
            synced_at = max(merged.synced_at or snapshot_at, snapshot_at)
            merged = merged.model_copy(update={"synced_at": synced_at})
            if merged.snapshot() != bookmark.snapshot() or merged.saved_at != bookmark.saved_at:
                plan.merged.append(job_id)
            converged.upsert(merged)
            converged.clear_removal(job_id)
            continue

        confirmed_before_snapshot = (
            bookmark.synced_at is not None and bookmark.synced_at < snapshot_at
        )
        if confirmed_before_snapshot and adopt_remote_deletions:
            plan.dropped.append(job_id)
            continue

        converged.upsert(bookmark)
        plan.to_create.append(job_id)

    for job_id, remote_copy in remote_by_id.items():
        if job_id in local.bookmarks:
            continue
        removed_at = local.pending_removals.get(job_id)
        if removed_at is not None and not _saved_after(remote_copy, removed_at):
            plan.to_remove.append(job_id)
            continue
        # Re-saved elsewhere after our unsave: the newer save wins.
        converged.clear_removal(job_id)
        converged.upsert(remote_copy.model_copy(update={"synced_at": snapshot_at}))
        plan.adopted.append(job_id)

    for job_id in list(converged.pending_removals):
        if job_id not in remote_by_id:
            converged.clear_removal(job_id)

    plan.to_create.sort()
    plan.to_remove.sort()
    return plan


class ReconciliationEngine:
    """Runs one reconciliation pass for a partition.

    The remote list is fetched without holding the partition lock, so saves
    and unsaves stay responsive during slow network calls; the plan is then
    computed against the freshest local state under ``edit``.
    """

    def __init__(
        self,
        local_store: BookmarkLocalStore,
        remote: BookmarkRemote,
        *,
        adopt_remote_deletions: bool = True,
    ) -> None:
        self._local = local_store
        self._remote = remote
        self.adopt_remote_deletions = adopt_remote_deletions

    async def reconcile(
        self,
        partition: str,
        *,
        trigger: str | None = None,
        correlation_id: str | None = None,
    ) -> SyncResult:
        start_time = time.time()
        correlation_id = correlation_id or generate_correlation_id()
        result = SyncResult(partition=partition, trigger=trigger)

        logger.info(
            "saved_jobs_sync_start",
            extra={"correlation_id": correlation_id, "partition": partition, "trigger": trigger},
        )

        snapshot_at = utc_now()
        outcome = await self._remote.list()
        result.remote_outcome = outcome.kind

        if not isinstance(outcome, Success):
            result.status = "local_only"
            if not isinstance(outcome, EndpointUnavailable):
                record_error(result, describe_outcome(outcome), _is_retryable(outcome))
            result.duration_seconds = time.time() - start_time
            logger.info(
                "saved_jobs_sync_local_only",
                extra={
                    "correlation_id": correlation_id,
                    "partition": partition,
                    "outcome": outcome.kind,
                    "duration_seconds": result.duration_seconds,
                },
            )
            return result

        async with self._local.edit(partition) as collection:
            plan = plan_reconciliation(
                collection,
                outcome.payload,
                snapshot_at=snapshot_at,
                adopt_remote_deletions=self.adopt_remote_deletions,
            )
            collection.replace_with(plan.converged)

        result.items_adopted = len(plan.adopted)
        result.items_merged = len(plan.merged)
        result.items_dropped = len(plan.dropped)
        if plan.dropped:
            logger.info(
                "saved_jobs_removed_elsewhere",
                extra={
                    "correlation_id": correlation_id,
                    "partition": partition,
                    "job_ids": plan.dropped,
                },
            )

        if plan.needs_remote_calls:
            await self._push(partition, plan, result, correlation_id)

        result.duration_seconds = time.time() - start_time
        logger.info(
            "saved_jobs_sync_complete",
            extra={
                "correlation_id": correlation_id,
                "partition": partition,
                "adopted": result.items_adopted,
                "merged": result.items_merged,
                "pushed": result.items_pushed,
                "push_failed": result.items_push_failed,
                "removed_remote": result.items_removed_remote,
                "dropped": result.items_dropped,
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    async def _push(
        self,
        partition: str,
        plan: ReconciliationPlan,
        result: SyncResult,
        correlation_id: str,
    ) -> None:
        # An unsave or save may have landed since planning; skip stale calls.
        current = await self._local.read(partition)
        creates = [job_id for job_id in plan.to_create if job_id in current]
        removes = [
            job_id
            for job_id in plan.to_remove
            if job_id in current.pending_removals and job_id not in current
        ]

        created: list[int] = []
        for job_id in creates:
            if await self._call_remote("create", job_id, result, correlation_id):
                created.append(job_id)

        removed: list[int] = []
        for job_id in removes:
            if await self._call_remote("remove", job_id, result, correlation_id):
                removed.append(job_id)

        result.items_pushed = len(created)
        result.items_removed_remote = len(removed)
        if not created and not removed:
            return

        confirmed_at = utc_now()
        async with self._local.edit(partition) as collection:
            for job_id in created:
                bookmark = collection.get(job_id)
                if bookmark is not None:
                    collection.upsert(bookmark.model_copy(update={"synced_at": confirmed_at}))
            for job_id in removed:
                if job_id not in collection:
                    collection.clear_removal(job_id)

    async def _call_remote(
        self, operation: str, job_id: int, result: SyncResult, correlation_id: str
    ) -> bool:
        try:
            if operation == "create":
                outcome = await self._remote.create(job_id)
            else:
                outcome = await self._remote.remove(job_id)
        except Exception as exc:
            result.items_push_failed += 1
            record_error(result, f"Failed to {operation} job {job_id}: {exc}", retryable=True)
            logger.warning(
                "saved_jobs_push_item_failed",
                extra={
                    "correlation_id": correlation_id,
                    "operation": operation,
                    "job_id": job_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return False

        if isinstance(outcome, Success):
            return True

        result.items_push_failed += 1
        if not isinstance(outcome, EndpointUnavailable):
            record_error(
                result,
                f"Failed to {operation} job {job_id}: {describe_outcome(outcome)}",
                _is_retryable(outcome),
            )
        return False


def _is_retryable(outcome: object) -> bool:
    if isinstance(outcome, TransientFailure):
        return outcome.retryable
    return isinstance(outcome, AuthFailure)
