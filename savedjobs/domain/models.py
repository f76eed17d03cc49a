"""Pydantic models for saved-job bookmarks and the per-user collection."""

from __future__ import annotations

import json
from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from savedjobs.core.time_utils import ensure_datetime, isoformat_z, utc_now

COLLECTION_FORMAT_VERSION = 1

# Denormalized display fields, merged one by one during reconciliation.
SNAPSHOT_FIELDS: tuple[str, ...] = (
    "title",
    "company_name",
    "min_salary",
    "max_salary",
    "currency",
    "city",
    "country",
    "location_type",
    "employment_type",
)


def is_empty(value: Any) -> bool:
    """``None`` and blank strings are empty; ``0`` is a real value."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class Bookmark(BaseModel):
    """A job the user saved, with the snapshot needed to render it offline."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    job_id: int = Field(
        validation_alias=AliasChoices("job_id", "jobId", "id"),
        serialization_alias="jobId",
    )
    title: str
    company_name: str | None = Field(default=None, alias="companyName")
    min_salary: int | float | None = Field(default=None, alias="minSalary")
    max_salary: int | float | None = Field(default=None, alias="maxSalary")
    currency: str | None = None
    city: str | None = None
    country: str | None = None
    location_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("location_type", "locationType", "jobLocationType"),
        serialization_alias="locationType",
    )
    employment_type: str | None = Field(default=None, alias="employmentType")
    saved_at: datetime = Field(default_factory=utc_now, alias="savedAt")
    synced_at: datetime | None = Field(default=None, alias="syncedAt")
    # False when the server listed the bookmark without a save timestamp.
    saved_at_known: bool = Field(default=True, exclude=True)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("saved_at", mode="before")
    @classmethod
    def _coerce_saved_at(cls, value: Any) -> datetime:
        return ensure_datetime(value) or utc_now()

    @field_validator("synced_at", mode="before")
    @classmethod
    def _coerce_synced_at(cls, value: Any) -> datetime | None:
        return ensure_datetime(value)

    @property
    def synced(self) -> bool:
        return self.synced_at is not None

    def snapshot(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in SNAPSHOT_FIELDS}


class BookmarkCollection(BaseModel):
    """All bookmarks of one user partition, keyed by job id.

    ``pending_removals`` holds tombstones for explicit unsaves whose removal
    on the server has not been observed yet; reconciliation uses them to keep
    a stale remote copy from resurrecting the bookmark.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bookmarks: dict[int, Bookmark] = Field(default_factory=dict)
    pending_removals: dict[int, datetime] = Field(
        default_factory=dict, alias="pendingRemovals"
    )

    def __len__(self) -> int:
        return len(self.bookmarks)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self.bookmarks

    def get(self, job_id: int) -> Bookmark | None:
        return self.bookmarks.get(job_id)

    def job_ids(self) -> set[int]:
        return set(self.bookmarks)

    def upsert(self, bookmark: Bookmark) -> None:
        self.bookmarks[bookmark.job_id] = bookmark

    def remove(self, job_id: int) -> Bookmark | None:
        return self.bookmarks.pop(job_id, None)

    def mark_removed(self, job_id: int, removed_at: datetime) -> None:
        self.pending_removals[job_id] = removed_at

    def clear_removal(self, job_id: int) -> None:
        self.pending_removals.pop(job_id, None)

    def replace_with(self, other: BookmarkCollection) -> None:
        """Adopt ``other``'s state in place (used inside an edit scope)."""
        self.bookmarks = dict(other.bookmarks)
        self.pending_removals = dict(other.pending_removals)

    def sorted_bookmarks(self) -> list[Bookmark]:
        """Newest first, the order the saved-jobs list is displayed in."""
        return sorted(self.bookmarks.values(), key=lambda b: (b.saved_at, b.job_id), reverse=True)

    def to_json(self) -> str:
        payload = {
            "version": COLLECTION_FORMAT_VERSION,
            "bookmarks": [
                b.model_dump(mode="json", by_alias=True)
                for b in sorted(self.bookmarks.values(), key=lambda b: b.job_id)
            ],
            "pendingRemovals": {
                str(job_id): isoformat_z(removed_at)
                for job_id, removed_at in sorted(self.pending_removals.items())
            },
        }
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> BookmarkCollection:
        """Parse a stored payload.

        Besides the versioned object written by :meth:`to_json`, the bare JSON
        array of saved jobs written by earlier app releases is accepted.

        Raises:
            ValueError: If the payload is not valid JSON or has the wrong shape.
        """
        data = json.loads(raw)
        if isinstance(data, list):
            items, removals = data, {}
        elif isinstance(data, dict):
            items = data.get("bookmarks") or []
            removals = data.get("pendingRemovals") or {}
        else:
            msg = f"Unexpected saved jobs payload type: {type(data).__name__}"
            raise ValueError(msg)

        collection = cls()
        for item in items:
            collection.upsert(Bookmark.model_validate(item))
        for job_id, removed_at in removals.items():
            parsed = ensure_datetime(removed_at)
            if parsed is not None:
                collection.mark_removed(int(job_id), parsed)
        return collection
