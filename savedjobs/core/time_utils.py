from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_datetime(value: Any) -> datetime | None:
    """Coerce ``value`` into an aware UTC datetime.

    Accepts datetimes (naive values are assumed to be UTC) and ISO-8601 strings,
    including the ``Z`` suffix emitted by JavaScript clients. Anything else,
    including unparseable strings, yields ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def isoformat_z(value: datetime) -> str:
    """Render an aware datetime as ISO-8601 with a trailing ``Z``."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
