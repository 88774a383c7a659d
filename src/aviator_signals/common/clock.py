"""Timestamp parsing and hour-window helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string (or pass through a datetime).

    Returns None for anything that cannot be read as a timestamp.
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return ensure_aware(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    except ValueError:
        return None


def to_iso(dt: datetime) -> str:
    """Storage format: UTC, fixed microsecond precision so text order is time order."""
    return ensure_aware(dt).astimezone(timezone.utc).isoformat(timespec="microseconds")


def hour_window(now: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Calendar hour containing `now` in `tz`, as [start, end)."""
    local = ensure_aware(now).astimezone(tz)
    start = local.replace(minute=0, second=0, microsecond=0)
    return start, start + timedelta(hours=1)
