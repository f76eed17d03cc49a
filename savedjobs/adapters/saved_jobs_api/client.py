"""Saved-jobs REST API client."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any

import httpx

from savedjobs.adapters.saved_jobs_api.models import CreateBookmarkRequest, parse_bookmark_list
from savedjobs.adapters.saved_jobs_api.outcomes import (
    AuthFailure,
    EndpointUnavailable,
    Success,
    TransientFailure,
    describe_outcome,
)

if TYPE_CHECKING:
    from typing import Self

    from savedjobs.adapters.saved_jobs_api.outcomes import RemoteOutcome
    from savedjobs.config import ApiConfig
    from savedjobs.domain.models import Bookmark

logger = logging.getLogger(__name__)

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 5.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Exponential backoff with jitter for the 0-indexed ``attempt``."""
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


class SavedJobsApiClient:
    """Async client for the bookmarks endpoint.

    Every call returns a classified outcome (:class:`Success`,
    :class:`EndpointUnavailable`, :class:`TransientFailure` or
    :class:`AuthFailure`); HTTP and network problems never escape as exceptions.

    The ``http_client`` is expected to carry the base URL and the bearer token
    already; :meth:`from_config` builds one that does.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        route: str = "/bookmarks",
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        owns_client: bool = False,
    ) -> None:
        self._http = http_client
        self.route = "/" + route.strip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._owns_client = owns_client

    @classmethod
    def from_config(cls, cfg: ApiConfig, token: str | None = None) -> Self:
        """Build a client with its own authenticated ``httpx.AsyncClient``."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        bearer = token if token is not None else cfg.token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        http_client = httpx.AsyncClient(
            base_url=cfg.base_url, headers=headers, timeout=cfg.timeout_sec
        )
        return cls(
            http_client,
            route=cfg.route,
            timeout=cfg.timeout_sec,
            max_retries=cfg.max_retries,
            retry_base_delay=cfg.retry_base_delay_sec,
            retry_max_delay=cfg.retry_max_delay_sec,
            owns_client=True,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def list(self) -> RemoteOutcome[list[Bookmark]]:
        """``GET {route}``: every bookmark the server knows for this user."""
        result = await self._request("GET", self.route, operation="list")
        if not isinstance(result, httpx.Response):
            return result

        try:
            bookmarks = parse_bookmark_list(result.json())
        except ValueError as exc:
            outcome = TransientFailure(
                reason=f"invalid bookmark list payload: {exc}",
                status_code=result.status_code,
                retryable=False,
            )
            self._log_failure(outcome, operation="list")
            return outcome

        logger.debug("saved_jobs_remote_listed", extra={"count": len(bookmarks)})
        return Success(bookmarks)

    async def create(self, job_id: int) -> RemoteOutcome[int]:
        """``POST {route}`` with ``{"jobId": ...}``; 409 means it already exists."""
        body = CreateBookmarkRequest(job_id=job_id).model_dump(by_alias=True)
        result = await self._request(
            "POST",
            self.route,
            operation="create",
            job_id=job_id,
            json=body,
            accept_statuses=frozenset({409}),
        )
        if not isinstance(result, httpx.Response):
            return result
        logger.info("saved_jobs_remote_created", extra={"job_id": job_id})
        return Success(job_id)

    async def remove(self, job_id: int) -> RemoteOutcome[int]:
        """``DELETE {route}/{job_id}``."""
        result = await self._request(
            "DELETE", f"{self.route}/{job_id}", operation="remove", job_id=job_id
        )
        if not isinstance(result, httpx.Response):
            return result
        logger.info("saved_jobs_remote_removed", extra={"job_id": job_id})
        return Success(job_id)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        job_id: int | None = None,
        json: Any = None,
        accept_statuses: frozenset[int] = frozenset(),
    ) -> httpx.Response | EndpointUnavailable | TransientFailure | AuthFailure:
        """Send one request, retrying transient failures with backoff.

        Returns the response for 2xx/3xx (and ``accept_statuses``), otherwise
        the classified failure.
        """
        attempt = 0
        while True:
            failure: EndpointUnavailable | TransientFailure | AuthFailure
            try:
                response = await self._http.request(method, path, json=json, timeout=self.timeout)
            except httpx.TimeoutException as exc:
                failure = TransientFailure(reason=f"timeout: {exc!s}".rstrip(": "))
            except httpx.TransportError as exc:
                failure = TransientFailure(reason=f"network error: {exc!s}".rstrip(": "))
            else:
                if response.status_code < 400 or response.status_code in accept_statuses:
                    return response
                failure = self._classify_status(response)

            if not isinstance(failure, TransientFailure) or not failure.retryable:
                self._log_failure(failure, operation=operation, job_id=job_id)
                return failure

            if attempt >= self.max_retries:
                self._log_failure(
                    failure, operation=operation, job_id=job_id, attempts=attempt + 1
                )
                return failure

            delay = _calculate_delay(
                attempt, self.retry_base_delay, self.retry_max_delay, DEFAULT_JITTER
            )
            logger.debug(
                "saved_jobs_retry_attempt",
                extra={
                    "operation": operation,
                    "job_id": job_id,
                    "attempt": attempt + 1,
                    "max_retries": self.max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": failure.reason,
                },
            )
            await asyncio.sleep(delay)
            attempt += 1

    def _classify_status(
        self, response: httpx.Response
    ) -> EndpointUnavailable | TransientFailure | AuthFailure:
        status = response.status_code
        if status == 404:
            return EndpointUnavailable(status_code=status, detail=str(response.request.url.path))
        if status in (401, 403):
            return AuthFailure(status_code=status, reason=response.reason_phrase)
        if status in RETRYABLE_STATUS_CODES or status >= 500:
            return TransientFailure(reason=response.reason_phrase or "server error", status_code=status)
        return TransientFailure(
            reason=response.reason_phrase or "unexpected status",
            status_code=status,
            retryable=False,
        )

    @staticmethod
    def _log_failure(
        outcome: EndpointUnavailable | TransientFailure | AuthFailure,
        *,
        operation: str,
        job_id: int | None = None,
        attempts: int | None = None,
    ) -> None:
        extra: dict[str, Any] = {
            "operation": operation,
            "job_id": job_id,
            "outcome": outcome.kind,
            "status_code": outcome.status_code,
        }
        if attempts is not None:
            extra["attempts"] = attempts
        if isinstance(outcome, EndpointUnavailable):
            # Soft-launched backend: the feature simply is not there yet.
            logger.debug("saved_jobs_endpoint_unavailable", extra=extra)
            return
        extra["error"] = describe_outcome(outcome)
        logger.warning("saved_jobs_remote_call_failed", extra=extra)
