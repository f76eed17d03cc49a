from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .api import ApiConfig
from .infrastructure import RuntimeConfig, StorageConfig
from .sync import SyncConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    api: ApiConfig
    storage: StorageConfig
    sync: SyncConfig
    runtime: RuntimeConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env``.

    Each section is a plain pydantic model whose fields carry the flat
    environment variable name as ``validation_alias``.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    api: ApiConfig = Field(default_factory=ApiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested sections from flat environment variables.

        Constructor arguments take precedence over ``os.environ``.
        """
        if not isinstance(data, dict):
            return data

        result = dict(data)
        merged_source = {**os.environ, **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if not nested_data:
                continue
            existing = result.get(field_name)
            if isinstance(existing, dict):
                result[field_name] = {**nested_data, **existing}
            elif existing is None:
                result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            aliases.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def as_app_config(self) -> AppConfig:
        return AppConfig(
            api=self.api,
            storage=self.storage,
            sync=self.sync,
            runtime=self.runtime,
        )


def load_config(**overrides: Any) -> AppConfig:
    """Load configuration from the environment (and ``.env`` when present).

    Keyword overrides are section dicts, e.g. ``load_config(storage={"db_path": ":memory:"})``,
    and win over environment values.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc

    if not settings.api.token:
        logger.info("saved_jobs_api_token_missing", extra={"base_url": settings.api.base_url})

    return settings.as_app_config()
