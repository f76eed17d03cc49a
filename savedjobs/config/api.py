from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class ApiConfig(BaseModel):
    """Saved-jobs backend endpoint and HTTP client behaviour."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(
        default="https://api.kariyerimesnek.com",
        validation_alias="SAVED_JOBS_API_URL",
        description="Base URL of the marketplace API",
    )
    token: str = Field(
        default="",
        validation_alias="SAVED_JOBS_API_TOKEN",
        description="Bearer token of the signed-in user",
    )
    route: str = Field(
        default="/bookmarks",
        validation_alias="SAVED_JOBS_API_ROUTE",
        description="Collection route for bookmarks (older backends use /saved-jobs)",
    )
    timeout_sec: float = Field(
        default=15.0,
        validation_alias="SAVED_JOBS_API_TIMEOUT_SEC",
        description="Per-request timeout in seconds",
    )
    max_retries: int = Field(
        default=2,
        validation_alias="SAVED_JOBS_API_MAX_RETRIES",
        description="Retries for transient failures before giving up on a call",
    )
    retry_base_delay_sec: float = Field(
        default=0.5,
        validation_alias="SAVED_JOBS_API_RETRY_BASE_DELAY_SEC",
    )
    retry_max_delay_sec: float = Field(
        default=5.0,
        validation_alias="SAVED_JOBS_API_RETRY_MAX_DELAY_SEC",
    )

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: Any) -> str:
        url = str(value or "").strip()
        if not url:
            msg = "Saved jobs API URL cannot be empty"
            raise ValueError(msg)
        if not url.startswith(("http://", "https://")):
            msg = "Saved jobs API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("token", mode="before")
    @classmethod
    def _validate_token(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        token = str(value).strip()
        if len(token) > 4096:
            msg = "Saved jobs API token appears to be too long"
            raise ValueError(msg)
        if any(char in token for char in (" ", "\n", "\t")):
            msg = "Saved jobs API token contains invalid characters"
            raise ValueError(msg)
        return token

    @field_validator("route", mode="before")
    @classmethod
    def _validate_route(cls, value: Any) -> str:
        route = str(value or "/bookmarks").strip()
        if not route.startswith("/"):
            route = f"/{route}"
        return route.rstrip("/") or "/bookmarks"

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 15.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "API timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 300:
            msg = "API timeout must be between 0 and 300 seconds"
            raise ValueError(msg)
        return parsed

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_max_retries(cls, value: Any) -> int:
        if value in (None, ""):
            return 2
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = "API max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "API max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed

    @field_validator("retry_base_delay_sec", "retry_max_delay_sec", mode="before")
    @classmethod
    def _validate_delays(cls, value: Any, info: ValidationInfo) -> float:
        if value in (None, ""):
            return float(cls.model_fields[info.field_name].default)
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid number"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 60:
            msg = f"{info.field_name.replace('_', ' ')} must be between 0 and 60"
            raise ValueError(msg)
        return parsed
