from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StorageConfig(BaseModel):
    """On-device persistence of saved-jobs collections."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    db_path: str = Field(
        default="saved_jobs.db",
        validation_alias="DB_PATH",
        description="SQLite file holding the per-user collections (':memory:' allowed)",
    )
    operation_timeout: float = Field(
        default=10.0,
        validation_alias="DB_OPERATION_TIMEOUT",
        description="Database operation timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        validation_alias="DB_MAX_RETRIES",
        description="Retries when SQLite reports the database as locked or busy",
    )
    key_prefix: str = Field(
        default="saved_jobs",
        validation_alias="SAVED_JOBS_KEY_PREFIX",
        description="Namespace prefix of partition keys",
    )

    @field_validator("db_path", mode="before")
    @classmethod
    def _validate_db_path(cls, value: Any) -> str:
        path = str(value or "saved_jobs.db").strip()
        if "\x00" in path:
            msg = "DB path contains invalid characters"
            raise ValueError(msg)
        return path

    @field_validator("operation_timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 10.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "DB operation timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 300:
            msg = "DB operation timeout must be between 0 and 300 seconds"
            raise ValueError(msg)
        return parsed

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_max_retries(cls, value: Any) -> int:
        if value in (None, ""):
            return 3
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = "DB max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "DB max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed

    @field_validator("key_prefix", mode="before")
    @classmethod
    def _validate_key_prefix(cls, value: Any) -> str:
        prefix = str(value or "saved_jobs").strip()
        if not prefix:
            return "saved_jobs"
        if len(prefix) > 64:
            msg = "Saved jobs key prefix is too long"
            raise ValueError(msg)
        if not all(ch.isalnum() or ch in "-_.:@" for ch in prefix):
            msg = "Saved jobs key prefix contains invalid characters"
            raise ValueError(msg)
        return prefix


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None
