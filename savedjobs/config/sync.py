from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SyncConfig(BaseModel):
    """When reconciliation runs and how it treats remote deletions."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    auto_sync_enabled: bool = Field(default=True, validation_alias="SYNC_AUTO_ENABLED")
    interval_minutes: int = Field(default=30, validation_alias="SYNC_INTERVAL_MINUTES")
    focus_min_interval_sec: float = Field(
        default=30.0,
        validation_alias="SYNC_FOCUS_MIN_INTERVAL_SEC",
        description="Skip focus-triggered syncs this soon after a successful one",
    )
    adopt_remote_deletions: bool = Field(
        default=True,
        validation_alias="SYNC_ADOPT_REMOTE_DELETIONS",
        description="Drop local bookmarks that were confirmed remotely and later removed elsewhere",
    )

    @field_validator("interval_minutes", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else 30))
        except ValueError as exc:
            msg = "Sync interval must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 1 or parsed > 1440:
            msg = "Sync interval must be between 1 and 1440 minutes"
            raise ValueError(msg)
        return parsed

    @field_validator("focus_min_interval_sec", mode="before")
    @classmethod
    def _validate_focus_interval(cls, value: Any) -> float:
        try:
            parsed = float(str(value if value not in (None, "") else 30.0))
        except ValueError as exc:
            msg = "Focus sync interval must be a valid number"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 3600:
            msg = "Focus sync interval must be between 0 and 3600 seconds"
            raise ValueError(msg)
        return parsed
