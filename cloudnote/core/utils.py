"""
Core Utilities.

Shared time and query helpers. All stored timestamps are timezone-naive UTC.
"""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    Note timestamps, admin log entries, and blob manifests all use this
    value so the SQLite and PostgreSQL targets store identical shapes.

    Returns:
        Current UTC time with tzinfo stripped
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis() -> int:
    """Milliseconds since the epoch, used to name export and backup blobs."""
    return time.time_ns() // 1_000_000


def isoformat_utc(value: datetime | None) -> str | None:
    """Render a naive-UTC datetime as ISO 8601 with a trailing Z."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally under a backslash escape."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
