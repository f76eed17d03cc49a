from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sys
import uuid
from logging.handlers import RotatingFileHandler
from typing import Any

UTC = dt.UTC

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "message",
    }
)

_PERFORMANCE_FIELDS = frozenset({"duration_seconds", "latency_ms", "attempts", "delay_seconds"})
_SYNC_FIELDS = frozenset({"partition", "job_id", "trigger", "outcome", "status_code"})


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter that groups structured ``extra`` fields by concern."""

    def __init__(self, include_location: bool = True, include_process_info: bool = False):
        super().__init__()
        self.include_location = include_location
        self.include_process_info = include_process_info
        self.hostname = os.uname().nodename if hasattr(os, "uname") else "unknown"

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
        }

        if self.include_location:
            base.update(
                {
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
            )

        if self.include_process_info:
            base.update({"process": record.process, "thread": record.thread})

        if record.exc_info:
            base["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields: dict[str, Any] = {}
        performance_fields: dict[str, Any] = {}
        sync_fields: dict[str, Any] = {}

        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _STANDARD_FIELDS or key in base:
                continue
            if key in ("correlation_id", "cid"):
                continue
            if key in _PERFORMANCE_FIELDS:
                performance_fields[key] = value
            elif key in _SYNC_FIELDS:
                sync_fields[key] = value
            else:
                extra_fields[key] = value

        if performance_fields:
            base["performance"] = performance_fields
        if sync_fields:
            base["sync"] = sync_fields
        if extra_fields:
            base["extra"] = extra_fields

        correlation_id = getattr(record, "correlation_id", None) or getattr(record, "cid", None)
        if correlation_id:
            base["correlation_id"] = correlation_id

        return json.dumps(
            base, ensure_ascii=False, default=self._json_serializer, separators=(",", ":")
        )

    def _json_serializer(self, obj: Any) -> str:
        if isinstance(obj, dt.datetime):
            return obj.isoformat()
        if isinstance(obj, set | frozenset):
            return str(sorted(obj))
        return str(obj)


def setup_json_logging(
    level: str = "INFO",
    include_location: bool = True,
    include_process_info: bool = False,
    log_file: str | None = None,
    max_file_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Configure JSON logging on stdout and, optionally, a rotating log file.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_location: Include module/function/line in each record
        include_process_info: Include process and thread ids
        log_file: Optional path for a rotating file handler
        max_file_bytes: Rotation threshold for the file handler
        backup_count: Number of rotated files to keep
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    formatter = EnhancedJsonFormatter(
        include_location=include_location, include_process_info=include_process_info
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(lvl)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_file_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # httpx logs every request at INFO; keep those out of the sync stream.
    for noisy_logger in ("httpx", "httpcore", "apscheduler.executors.default"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "json_logging_initialized",
        extra={"setup_config": {"level": level.upper(), "log_file": log_file}},
    )


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing one operation across log lines."""
    return uuid.uuid4().hex[:12]
