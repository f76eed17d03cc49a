"""Single-flight scheduling of reconciliation runs per partition."""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import TYPE_CHECKING

from savedjobs.core.logging_utils import generate_correlation_id
from savedjobs.sync.errors import record_error
from savedjobs.sync.models import SyncResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from savedjobs.sync.reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


class SyncTrigger(str, Enum):
    """What asked for the sync."""

    FOCUS = "focus"  # saved-jobs screen became visible
    REFRESH = "refresh"  # pull-to-refresh
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class SyncOrchestrator:
    """Runs at most one reconciliation per partition at a time.

    A sync requested while another one is running for the same partition
    joins it and receives the same result. Failures never leave the
    orchestrator: they come back as a ``failed`` ``SyncResult`` and the
    partition returns to IDLE, ready for the next trigger.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        *,
        focus_min_interval_sec: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self.focus_min_interval_sec = focus_min_interval_sec
        self._clock = clock
        self._in_flight: dict[str, asyncio.Task[SyncResult]] = {}
        self._last_results: dict[str, SyncResult] = {}
        self._last_ok_at: dict[str, float] = {}

    def state(self, partition: str) -> SyncState:
        task = self._in_flight.get(partition)
        if task is not None and not task.done():
            return SyncState.SYNCING
        return SyncState.IDLE

    def last_result(self, partition: str) -> SyncResult | None:
        return self._last_results.get(partition)

    async def sync(self, partition: str, trigger: SyncTrigger = SyncTrigger.MANUAL) -> SyncResult:
        task = self._in_flight.get(partition)
        if task is not None and not task.done():
            logger.debug(
                "saved_jobs_sync_joined",
                extra={"partition": partition, "trigger": trigger.value},
            )
            return await asyncio.shield(task)

        if trigger is SyncTrigger.FOCUS and self._synced_recently(partition):
            logger.debug(
                "saved_jobs_focus_sync_throttled",
                extra={"partition": partition, "min_interval": self.focus_min_interval_sec},
            )
            return self._last_results[partition]

        task = asyncio.create_task(self._run(partition, trigger))
        self._in_flight[partition] = task
        task.add_done_callback(lambda done, key=partition: self._forget(key, done))
        # Shielded so a cancelled caller does not abort a run others may have joined.
        return await asyncio.shield(task)

    async def wait_idle(self) -> None:
        """Wait for every in-flight sync to finish."""
        tasks = [task for task in self._in_flight.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _synced_recently(self, partition: str) -> bool:
        last_ok = self._last_ok_at.get(partition)
        if last_ok is None or partition not in self._last_results:
            return False
        return self._clock() - last_ok < self.focus_min_interval_sec

    def _forget(self, partition: str, task: asyncio.Task[SyncResult]) -> None:
        if self._in_flight.get(partition) is task:
            del self._in_flight[partition]

    async def _run(self, partition: str, trigger: SyncTrigger) -> SyncResult:
        correlation_id = generate_correlation_id()
        try:
            result = await self._engine.reconcile(
                partition, trigger=trigger.value, correlation_id=correlation_id
            )
        except Exception as exc:
            logger.exception(
                "saved_jobs_sync_failed",
                extra={
                    "correlation_id": correlation_id,
                    "partition": partition,
                    "trigger": trigger.value,
                    "error": str(exc),
                },
            )
            result = SyncResult(
                partition=partition,
                status="failed",
                trigger=trigger.value,
                remote_outcome="not_completed",
            )
            record_error(result, f"Sync failed: {exc}", retryable=True)

        self._last_results[partition] = result
        if result.ok:
            self._last_ok_at[partition] = self._clock()
        return result
