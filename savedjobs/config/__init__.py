from __future__ import annotations

from .api import ApiConfig
from .infrastructure import RuntimeConfig, StorageConfig
from .settings import AppConfig, Settings, load_config
from .sync import SyncConfig

__all__ = [
    "ApiConfig",
    "AppConfig",
    "RuntimeConfig",
    "Settings",
    "StorageConfig",
    "SyncConfig",
    "load_config",
]
