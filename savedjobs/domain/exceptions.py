"""Domain-specific exceptions.

Only local persistence failures are surfaced to callers as operation failures;
remote problems travel as typed outcomes instead of exceptions.
"""

from __future__ import annotations


class SavedJobsError(Exception):
    """Base exception for all saved-jobs errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LocalStorageError(SavedJobsError):
    """Raised when the on-device store cannot be read or written."""
