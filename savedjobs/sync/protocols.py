"""Protocol definitions (ports) for saved-jobs sync.

Keeping these as Protocols isolates reconciliation from the concrete
storage backend, HTTP client and session layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from savedjobs.adapters.saved_jobs_api.outcomes import RemoteOutcome
    from savedjobs.domain.models import Bookmark


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def keys(self) -> list[str]: ...


class BookmarkRemote(Protocol):
    async def list(self) -> RemoteOutcome[list[Bookmark]]: ...

    async def create(self, job_id: int) -> RemoteOutcome[int]: ...

    async def remove(self, job_id: int) -> RemoteOutcome[int]: ...


class IdentityResolver(Protocol):
    async def current_user_id(self) -> str | None: ...
