"""Saved-jobs REST API adapter for bookmark synchronization."""

from savedjobs.adapters.saved_jobs_api.client import SavedJobsApiClient
from savedjobs.adapters.saved_jobs_api.outcomes import (
    AuthFailure,
    EndpointUnavailable,
    RemoteOutcome,
    Success,
    TransientFailure,
    describe_outcome,
)

__all__ = [
    "AuthFailure",
    "EndpointUnavailable",
    "RemoteOutcome",
    "SavedJobsApiClient",
    "Success",
    "TransientFailure",
    "describe_outcome",
]
