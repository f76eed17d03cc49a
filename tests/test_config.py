"""Tests for environment-driven configuration loading."""

from __future__ import annotations

import pytest

from savedjobs.config import ApiConfig, StorageConfig, SyncConfig, load_config

ENV_VARS = (
    "SAVED_JOBS_API_URL",
    "SAVED_JOBS_API_TOKEN",
    "SAVED_JOBS_API_ROUTE",
    "SAVED_JOBS_API_TIMEOUT_SEC",
    "SAVED_JOBS_API_MAX_RETRIES",
    "DB_PATH",
    "DB_OPERATION_TIMEOUT",
    "DB_MAX_RETRIES",
    "SAVED_JOBS_KEY_PREFIX",
    "SYNC_AUTO_ENABLED",
    "SYNC_INTERVAL_MINUTES",
    "SYNC_FOCUS_MIN_INTERVAL_SEC",
    "SYNC_ADOPT_REMOTE_DELETIONS",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture.
    monkeypatch.chdir(tmp_path)


def test_defaults():
    cfg = load_config()

    assert cfg.api.base_url == "https://api.kariyerimesnek.com"
    assert cfg.api.route == "/bookmarks"
    assert cfg.api.timeout_sec == 15.0
    assert cfg.api.token == ""
    assert cfg.storage.db_path == "saved_jobs.db"
    assert cfg.storage.key_prefix == "saved_jobs"
    assert cfg.sync.auto_sync_enabled is True
    assert cfg.sync.interval_minutes == 30
    assert cfg.sync.adopt_remote_deletions is True
    assert cfg.runtime.log_level == "INFO"
    assert cfg.runtime.log_file is None


def test_environment_values(monkeypatch):
    monkeypatch.setenv("SAVED_JOBS_API_URL", "http://localhost:8080/")
    monkeypatch.setenv("SAVED_JOBS_API_TOKEN", "secret")
    monkeypatch.setenv("SAVED_JOBS_API_ROUTE", "saved-jobs/")
    monkeypatch.setenv("SAVED_JOBS_API_TIMEOUT_SEC", "5")
    monkeypatch.setenv("DB_PATH", "/tmp/bookmarks.db")
    monkeypatch.setenv("SAVED_JOBS_KEY_PREFIX", "bookmarks")
    monkeypatch.setenv("SYNC_AUTO_ENABLED", "false")
    monkeypatch.setenv("SYNC_INTERVAL_MINUTES", "5")
    monkeypatch.setenv("SYNC_ADOPT_REMOTE_DELETIONS", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    cfg = load_config()

    assert cfg.api.base_url == "http://localhost:8080"
    assert cfg.api.token == "secret"
    assert cfg.api.route == "/saved-jobs"
    assert cfg.api.timeout_sec == 5.0
    assert cfg.storage.db_path == "/tmp/bookmarks.db"
    assert cfg.storage.key_prefix == "bookmarks"
    assert cfg.sync.auto_sync_enabled is False
    assert cfg.sync.interval_minutes == 5
    assert cfg.sync.adopt_remote_deletions is False
    assert cfg.runtime.log_level == "DEBUG"


def test_overrides_win_over_environment(monkeypatch):
    monkeypatch.setenv("DB_PATH", "/tmp/from-env.db")
    monkeypatch.setenv("DB_MAX_RETRIES", "5")

    cfg = load_config(storage={"db_path": ":memory:"})

    assert cfg.storage.db_path == ":memory:"
    assert cfg.storage.max_retries == 5


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SAVED_JOBS_API_URL", "ftp://example.com"),
        ("SAVED_JOBS_API_TIMEOUT_SEC", "-1"),
        ("SAVED_JOBS_API_MAX_RETRIES", "many"),
        ("SYNC_INTERVAL_MINUTES", "0"),
        ("SYNC_FOCUS_MIN_INTERVAL_SEC", "7200"),
        ("SAVED_JOBS_KEY_PREFIX", "bad prefix!"),
        ("LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values_fail_loading(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match="Configuration validation failed"):
        load_config()


def test_sections_are_frozen():
    cfg = ApiConfig()
    with pytest.raises(ValueError):
        cfg.token = "changed"


def test_sections_accept_field_names():
    assert StorageConfig(db_path=":memory:").db_path == ":memory:"
    assert SyncConfig(interval_minutes="15").interval_minutes == 15
