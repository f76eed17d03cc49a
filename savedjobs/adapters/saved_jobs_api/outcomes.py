"""Classified results of saved-jobs API calls.

Callers branch on the variant instead of catching exceptions: a missing
endpoint is an expected state of a soft-launched backend, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    payload: T

    @property
    def kind(self) -> str:
        return "success"


@dataclass(frozen=True, slots=True)
class EndpointUnavailable:
    """The bookmarks route answered 404: run local-only, silently."""

    status_code: int = 404
    detail: str = ""

    @property
    def kind(self) -> str:
        return "endpoint_unavailable"


@dataclass(frozen=True, slots=True)
class TransientFailure:
    """Network error, timeout, 5xx or an unusable response; retry on next sync."""

    reason: str
    status_code: int | None = None
    retryable: bool = True

    @property
    def kind(self) -> str:
        return "transient_failure"


@dataclass(frozen=True, slots=True)
class AuthFailure:
    """401/403: the session token was rejected."""

    status_code: int
    reason: str = ""

    @property
    def kind(self) -> str:
        return "auth_failure"


RemoteOutcome = Success[T] | EndpointUnavailable | TransientFailure | AuthFailure


def describe_outcome(outcome: Any) -> str:
    """One-line description for logs and ``SyncResult`` error lists."""
    if isinstance(outcome, Success):
        return "success"
    if isinstance(outcome, EndpointUnavailable):
        return f"endpoint unavailable (HTTP {outcome.status_code})"
    if isinstance(outcome, AuthFailure):
        return f"auth failure (HTTP {outcome.status_code}) {outcome.reason}".strip()
    if isinstance(outcome, TransientFailure):
        status = f"HTTP {outcome.status_code}: " if outcome.status_code else ""
        return f"transient failure ({status}{outcome.reason})"
    return repr(outcome)
