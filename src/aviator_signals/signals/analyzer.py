"""Pattern analysis over a window of recent rounds."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime

from aviator_signals.common.clock import ensure_aware, utcnow
from aviator_signals.common.types import round_half_up
from aviator_signals.history.models import OutcomeEvent
from aviator_signals.signals.models import MINUTES_UNKNOWN, PatternSummary, empty_distribution

LOW_THRESHOLD = 2.0
HIGH_THRESHOLD = 5.0


def _bucket(multiplier: float) -> str | None:
    """Distribution bucket for a multiplier; None below 1.0x."""
    if multiplier < 1.0:
        return None
    if multiplier < 2.0:
        return "1-2x"
    if multiplier < 5.0:
        return "2-5x"
    if multiplier < 10.0:
        return "5-10x"
    return "10x+"


def _minutes_between(earlier: datetime, now: datetime) -> int:
    minutes = (ensure_aware(now) - ensure_aware(earlier)).total_seconds() / 60.0
    # Future timestamps (clock skew) count as "just now"
    return max(0, math.floor(minutes))


def analyze_patterns(
    events: Sequence[OutcomeEvent],
    now: datetime | None = None,
) -> PatternSummary:
    """Reduce a window of rounds (newest first) to a PatternSummary.

    Never raises; an empty window yields zero counts and the 999 sentinel.
    """
    if now is None:
        now = utcnow()

    low_streak = 0
    for event in events:
        if event.multiplier >= LOW_THRESHOLD:
            break
        low_streak += 1

    last_high = next((e for e in events if e.multiplier >= HIGH_THRESHOLD), None)
    minutes_since_high = MINUTES_UNKNOWN
    if last_high is not None and last_high.round_time is not None:
        minutes_since_high = _minutes_between(last_high.round_time, now)

    avg = math.fsum(e.multiplier for e in events) / len(events) if events else math.nan
    avg_multiplier = 0.0 if math.isnan(avg) else round_half_up(avg, 2)

    distribution = empty_distribution()
    for event in events:
        bucket = _bucket(event.multiplier)
        if bucket is not None:
            distribution[bucket] += 1

    return PatternSummary(
        low_streak=low_streak,
        minutes_since_high=minutes_since_high,
        avg_multiplier=avg_multiplier,
        distribution=distribution,
        total_rounds=len(events),
        last_high_multiplier=last_high.multiplier if last_high else None,
        last_high_time=last_high.round_time if last_high else None,
    )
