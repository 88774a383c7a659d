"""Heuristic classification of a PatternSummary into a Signal."""

from __future__ import annotations

from datetime import datetime, timedelta

from aviator_signals.common.clock import utcnow
from aviator_signals.common.types import Platform, round_half_up
from aviator_signals.signals.models import AVOID_BETTING, PatternSummary, PredictionType, Signal

MAX_CONFIDENCE = 0.95
DEFAULT_TTL = timedelta(minutes=60)

# (minimum, delta, fragment template), highest tier first; one match per group
_STREAK_TIERS = (
    (15, 0.35, "{n} consecutive low candles"),
    (10, 0.25, "{n} low candles in a row"),
    (7, 0.15, "{n} recent low candles"),
)
_SILENCE_TIERS = (
    (60, 0.30, "{n}min without a high candle (>=5x)"),
    (45, 0.20, "{n}min without a high candle"),
    (30, 0.10, "{n}min without a high candle"),
)
# (upper bound, delta, fragment template)
_AVERAGE_TIERS = (
    (1.7, 0.20, "very low average ({x}x)"),
    (1.9, 0.10, "below-normal average ({x}x)"),
)
_LOW_SHARE_THRESHOLD = 0.65
_LOW_SHARE_DELTA = 0.15


def score(summary: PatternSummary) -> tuple[float, list[str]]:
    """Accumulate confidence and reason fragments from the heuristics.

    The total is rounded to 2 decimals but not capped.
    """
    confidence = 0.0
    reasons: list[str] = []

    for minimum, delta, template in _STREAK_TIERS:
        if summary.low_streak >= minimum:
            confidence += delta
            reasons.append(template.format(n=summary.low_streak))
            break

    for minimum, delta, template in _SILENCE_TIERS:
        if summary.minutes_since_high >= minimum:
            confidence += delta
            reasons.append(template.format(n=summary.minutes_since_high))
            break

    for bound, delta, template in _AVERAGE_TIERS:
        if summary.avg_multiplier < bound:
            confidence += delta
            reasons.append(template.format(x=summary.avg_multiplier))
            break

    if summary.total_rounds > 0:
        low_share = summary.distribution.get("1-2x", 0) / summary.total_rounds
        if low_share > _LOW_SHARE_THRESHOLD:
            confidence += _LOW_SHARE_DELTA
            reasons.append(f"{int(round_half_up(low_share * 100, 0))}% are low candles")

    return round(confidence, 2), reasons


def bucket_for(confidence: float) -> tuple[PredictionType, str]:
    """Map an accumulated confidence to a prediction type and range."""
    if confidence >= 0.65:
        return PredictionType.WAIT_HIGH, "3.5x - 8x"
    if confidence >= 0.40:
        return PredictionType.WAIT_HIGH, "2.5x - 6x"
    if confidence < 0.20:
        return PredictionType.CAUTION, AVOID_BETTING
    return PredictionType.NORMAL, "2x - 4x"


_FALLBACK_REASONS = {
    PredictionType.CAUTION: "irregular pattern, wait.",
    PredictionType.NORMAL: "normal game behavior.",
}


def classify(
    platform: Platform,
    summary: PatternSummary,
    now: datetime | None = None,
    ttl: timedelta = DEFAULT_TTL,
) -> Signal:
    """Derive an unpersisted Signal from a summary."""
    if now is None:
        now = utcnow()

    confidence, reasons = score(summary)
    prediction_type, suggested_range = bucket_for(confidence)
    if not reasons and prediction_type in _FALLBACK_REASONS:
        reasons.append(_FALLBACK_REASONS[prediction_type])

    return Signal(
        platform=platform,
        prediction_type=prediction_type,
        confidence=round(min(confidence, MAX_CONFIDENCE), 2),
        suggested_range=suggested_range,
        reason=", ".join(reasons),
        analysis_data=summary,
        created_at=now,
        expires_at=now + ttl,
        is_active=True,
    )
