"""Background scheduler for periodic saved-jobs sync."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from savedjobs.core.logging_utils import generate_correlation_id
from savedjobs.sync.orchestrator import SyncTrigger

if TYPE_CHECKING:
    from datetime import datetime

    from savedjobs.config import SyncConfig
    from savedjobs.services.saved_jobs_service import SavedJobsService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "saved_jobs_sync"


class SyncScheduler:
    """Runs ``SavedJobsService.sync`` on an interval while auto-sync is enabled."""

    def __init__(self, service: SavedJobsService, cfg: SyncConfig) -> None:
        """Initialize scheduler.

        Args:
            service: Facade whose current user is synced
            cfg: Sync configuration (enable flag and interval)
        """
        self.service = service
        self.cfg = cfg
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    async def start(self) -> None:
        """Start the scheduler with the sync job if auto-sync is enabled."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler()

        if self.cfg.auto_sync_enabled:
            self._scheduler.add_job(
                self._run_scheduled_sync,
                trigger=IntervalTrigger(minutes=self.cfg.interval_minutes),
                id=SYNC_JOB_ID,
                name="Saved Jobs Sync",
                replace_existing=True,
                max_instances=1,  # Prevent overlapping runs
                coalesce=True,
            )
            logger.info(
                "scheduler_sync_job_added",
                extra={"job_id": SYNC_JOB_ID, "interval_minutes": self.cfg.interval_minutes},
            )
        else:
            logger.info("scheduler_sync_job_skipped", extra={"auto_sync_enabled": False})

        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    async def _run_scheduled_sync(self) -> None:
        correlation_id = generate_correlation_id()
        logger.info("scheduled_sync_starting", extra={"correlation_id": correlation_id})
        try:
            ok = await self.service.sync(SyncTrigger.SCHEDULED)
        except Exception as e:
            logger.exception(
                "scheduled_sync_failed",
                extra={"correlation_id": correlation_id, "error": str(e)},
            )
            return

        result = self.service.last_sync_result
        logger.info(
            "scheduled_sync_complete",
            extra={
                "correlation_id": correlation_id,
                "ok": ok,
                "status": result.status if result else None,
                "outcome": result.remote_outcome if result else None,
                "errors": len(result.errors) if result else 0,
            },
        )

    def get_next_run_time(self, job_id: str = SYNC_JOB_ID) -> datetime | None:
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None
