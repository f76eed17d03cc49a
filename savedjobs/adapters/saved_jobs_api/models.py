"""Pydantic models for the saved-jobs REST API."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from savedjobs.core.time_utils import ensure_datetime, utc_now
from savedjobs.domain.models import Bookmark


class RemoteJob(BaseModel):
    """Job record embedded in a saved-job list item."""

    id: int
    title: str | None = None
    company_name: str | None = Field(default=None, alias="companyName")
    min_salary: int | float | None = Field(default=None, alias="minSalary")
    max_salary: int | float | None = Field(default=None, alias="maxSalary")
    currency: str | None = None
    city: str | None = None
    country: str | None = None
    job_location_type: str | None = Field(
        default=None, validation_alias=AliasChoices("jobLocationType", "locationType")
    )
    employment_type: str | None = Field(default=None, alias="employmentType")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class RemoteEmployer(BaseModel):
    company_name: str | None = Field(default=None, alias="companyName")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class RemoteSavedJob(BaseModel):
    """One entry of ``GET /bookmarks`` in the backend's nested shape."""

    job: RemoteJob
    employer: RemoteEmployer | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def to_bookmark(self) -> Bookmark:
        company_name = self.job.company_name or (
            self.employer.company_name if self.employer else None
        )
        return Bookmark(
            job_id=self.job.id,
            title=self.job.title or "",
            company_name=company_name,
            min_salary=self.job.min_salary,
            max_salary=self.job.max_salary,
            currency=self.job.currency,
            city=self.job.city,
            country=self.job.country,
            location_type=self.job.job_location_type,
            employment_type=self.job.employment_type,
            saved_at=self.created_at or utc_now(),
            saved_at_known=self.created_at is not None,
        )


class CreateBookmarkRequest(BaseModel):
    job_id: int = Field(alias="jobId")

    model_config = {"populate_by_name": True}


def parse_bookmark_list(payload: Any) -> list[Bookmark]:
    """Convert a ``GET /bookmarks`` body into bookmarks.

    Accepts ``{"data": [...]}``, ``{"bookmarks": [...]}`` or a bare list, whose
    items are either nested (``{"job": {...}, "employer": {...}, "createdAt"}``)
    or flat bookmark snapshots (``{"jobId", "title", ..., "savedAt"}``).

    Raises:
        ValueError: If the body or any item cannot be understood. A partially
            understood list is never returned because a missing item would
            read as "removed on the server".
    """
    if isinstance(payload, dict):
        envelope_key = next((name for name in ("data", "bookmarks") if name in payload), None)
        if envelope_key is None:
            msg = f"Saved jobs envelope has no list, keys: {sorted(payload)}"
            raise ValueError(msg)
        items = payload[envelope_key]
    else:
        items = payload
    if not isinstance(items, list):
        msg = f"Expected a list of saved jobs, got {type(items).__name__}"
        raise ValueError(msg)

    bookmarks: list[Bookmark] = []
    for item in items:
        if not isinstance(item, dict):
            msg = f"Unexpected saved job item type: {type(item).__name__}"
            raise ValueError(msg)
        if isinstance(item.get("job"), dict):
            bookmarks.append(RemoteSavedJob.model_validate(item).to_bookmark())
            continue
        flat = {key: value for key, value in item.items() if key not in ("syncedAt", "synced_at")}
        if "savedAt" not in flat and "createdAt" in flat:
            flat["savedAt"] = flat["createdAt"]
        flat.setdefault("title", "")
        saved_at = flat.get("savedAt", flat.get("saved_at"))
        flat["saved_at_known"] = ensure_datetime(saved_at) is not None
        bookmarks.append(Bookmark.model_validate(flat))
    return bookmarks
