"""Alternating-hour platform schedule.

Even hours of the reference timezone belong to Bravobet, odd hours to
Superbet, so exactly one platform is live at any moment.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from aviator_signals.common.clock import ensure_aware, hour_window, utcnow
from aviator_signals.common.types import Platform

_EVEN_HOUR_PLATFORM = Platform.BRAVOBET
_ODD_HOUR_PLATFORM = Platform.SUPERBET


def active_platform(tz: ZoneInfo, now: datetime | None = None) -> Platform:
    """The platform whose analysis window is open at ``now``."""
    if now is None:
        now = utcnow()
    hour = ensure_aware(now).astimezone(tz).hour
    return _EVEN_HOUR_PLATFORM if hour % 2 == 0 else _ODD_HOUR_PLATFORM


def is_platform_window_active(
    platform: Platform, tz: ZoneInfo, now: datetime | None = None,
) -> bool:
    return active_platform(tz, now) is platform


def next_window_change(tz: ZoneInfo, now: datetime | None = None) -> datetime:
    """Instant at which the active platform flips (top of the next hour)."""
    if now is None:
        now = utcnow()
    _, end = hour_window(now, tz)
    return end
