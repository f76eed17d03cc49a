"""Facade used by the UI layer to save, unsave and list bookmarks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from savedjobs.adapters.saved_jobs_api.outcomes import Success
from savedjobs.core.time_utils import utc_now
from savedjobs.domain.exceptions import LocalStorageError
from savedjobs.sync.orchestrator import SyncOrchestrator, SyncState, SyncTrigger
from savedjobs.sync.reconciliation import ReconciliationEngine, merge_bookmarks

if TYPE_CHECKING:
    from savedjobs.domain.models import Bookmark
    from savedjobs.sync.local_store import BookmarkLocalStore
    from savedjobs.sync.models import SyncResult
    from savedjobs.sync.protocols import BookmarkRemote, IdentityResolver

logger = logging.getLogger(__name__)


class SavedJobsService:
    """Offline-first saved jobs for the current user.

    Writes go to the local store first and are then mirrored to the remote
    on a best-effort basis; a missing endpoint, a timeout or a rejected token
    never turns a successful local save into a failure. Only local storage
    errors are reported to the caller.

    The user is resolved on every call so a login or logout switches the
    partition without rebuilding the service.
    """

    def __init__(
        self,
        local_store: BookmarkLocalStore,
        remote: BookmarkRemote,
        identity: IdentityResolver,
        *,
        orchestrator: SyncOrchestrator | None = None,
        adopt_remote_deletions: bool = True,
        focus_min_interval_sec: float = 30.0,
    ) -> None:
        self._local = local_store
        self._remote = remote
        self._identity = identity
        self._orchestrator = orchestrator or SyncOrchestrator(
            ReconciliationEngine(
                local_store, remote, adopt_remote_deletions=adopt_remote_deletions
            ),
            focus_min_interval_sec=focus_min_interval_sec,
        )
        self.last_sync_result: SyncResult | None = None

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    async def current_partition(self) -> str:
        return self._local.partition_key(await self._identity.current_user_id())

    async def save(self, bookmark: Bookmark) -> bool:
        """Persist ``bookmark`` locally, then push it if it is not on the server yet.

        Saving an id that is already saved refreshes its snapshot and keeps
        the original ``saved_at``.
        """
        partition = await self.current_partition()
        job_id = bookmark.job_id
        try:
            async with self._local.edit(partition) as collection:
                incoming = bookmark.model_copy(update={"synced_at": None})
                existing = collection.get(job_id)
                stored = incoming if existing is None else merge_bookmarks(incoming, existing)
                collection.upsert(stored)
                collection.clear_removal(job_id)
        except LocalStorageError:
            logger.exception(
                "saved_jobs_save_failed", extra={"partition": partition, "job_id": job_id}
            )
            return False

        logger.info(
            "saved_jobs_saved",
            extra={"partition": partition, "job_id": job_id, "refreshed": existing is not None},
        )
        if not stored.synced:
            await self._push_create(partition, job_id)
        return True

    async def unsave(self, job_id: int) -> bool:
        """Remove locally and remember the removal until the server reflects it."""
        partition = await self.current_partition()
        try:
            async with self._local.edit(partition) as collection:
                collection.remove(job_id)
                collection.mark_removed(job_id, utc_now())
        except LocalStorageError:
            logger.exception(
                "saved_jobs_unsave_failed", extra={"partition": partition, "job_id": job_id}
            )
            return False

        logger.info("saved_jobs_unsaved", extra={"partition": partition, "job_id": job_id})
        # The tombstone stays until a sync sees the id gone from the remote list.
        try:
            await self._remote.remove(job_id)
        except Exception as exc:
            logger.warning(
                "saved_jobs_remote_remove_error",
                extra={"partition": partition, "job_id": job_id, "error": str(exc)},
            )
        return True

    async def is_saved(self, job_id: int) -> bool:
        collection = await self._local.read(await self.current_partition())
        return job_id in collection

    async def list(self) -> list[Bookmark]:
        """Saved jobs of the current user, newest first."""
        collection = await self._local.read(await self.current_partition())
        return collection.sorted_bookmarks()

    async def sync(self, trigger: SyncTrigger = SyncTrigger.MANUAL) -> bool:
        """Reconcile the current user's bookmarks with the server.

        Returns ``False`` only when the run failed; an offline or missing
        endpoint still counts as a completed (local-only) run. The detailed
        result is kept in ``last_sync_result``.
        """
        partition = await self.current_partition()
        result = await self._orchestrator.sync(partition, trigger)
        self.last_sync_result = result
        return result.ok

    async def sync_state(self) -> SyncState:
        return self._orchestrator.state(await self.current_partition())

    async def purge_current_user(self) -> bool:
        return await self._local.purge(await self.current_partition())

    async def purge_all(self) -> int:
        return await self._local.purge_all()

    async def aclose(self) -> None:
        await self._orchestrator.wait_idle()

    async def _push_create(self, partition: str, job_id: int) -> None:
        try:
            outcome = await self._remote.create(job_id)
        except Exception as exc:
            logger.warning(
                "saved_jobs_remote_create_error",
                extra={"partition": partition, "job_id": job_id, "error": str(exc)},
            )
            return

        if not isinstance(outcome, Success):
            return

        try:
            async with self._local.edit(partition) as collection:
                current = collection.get(job_id)
                if current is not None and current.synced_at is None:
                    collection.upsert(current.model_copy(update={"synced_at": utc_now()}))
        except LocalStorageError as exc:
            # The bookmark is saved; the next sync confirms it instead.
            logger.warning(
                "saved_jobs_mark_synced_failed",
                extra={"partition": partition, "job_id": job_id, "error": str(exc)},
            )
