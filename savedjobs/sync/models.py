"""Result models for saved-jobs sync runs."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

SyncStatus = Literal["synced", "local_only", "failed"]


class SyncResult(BaseModel):
    """Result of one reconciliation of a partition.

    ``local_only`` means the remote could not be listed (missing endpoint,
    offline, auth rejected); local data was left exactly as it was.
    """

    partition: str
    status: SyncStatus = "synced"
    trigger: str | None = None
    remote_outcome: str = "success"
    items_adopted: int = 0
    items_merged: int = 0
    items_pushed: int = 0
    items_push_failed: int = 0
    items_removed_remote: int = 0
    items_dropped: int = 0
    errors: list[str] = Field(default_factory=list)
    retryable_errors: list[str] = Field(default_factory=list)
    permanent_errors: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status != "failed"
