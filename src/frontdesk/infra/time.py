"""Time utilities for consistent timestamp handling."""

import os
from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_now(tz_name: str | None = None) -> datetime:
    """Return the current wall-clock time for scheduling.

    Uses tz_name (or NO_SHOW_SWEEP_TZ) when given, otherwise the server's
    local timezone.
    """
    tz_name = tz_name or os.environ.get("NO_SHOW_SWEEP_TZ")
    if tz_name:
        return datetime.now(ZoneInfo(tz_name))
    return datetime.now().astimezone()
