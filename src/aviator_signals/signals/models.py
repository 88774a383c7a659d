"""Signal data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from aviator_signals.common.clock import parse_timestamp, to_iso
from aviator_signals.common.types import JsonDict, Platform

# Distribution bucket labels, half-open ranges over the multiplier
BUCKETS: tuple[str, ...] = ("1-2x", "2-5x", "5-10x", "10x+")

# Sentinel for "no high candle in the window" or an unreadable time
MINUTES_UNKNOWN = 999

AVOID_BETTING = "Evitar apostas"


class PredictionType(Enum):
    """Discrete signal produced by the classifier."""

    WAIT_HIGH = "WAIT_HIGH"
    NORMAL = "NORMAL"
    CAUTION = "CAUTION"
    # Reserved, never produced by the heuristic classifier
    IA_MATH = "IA_MATH"


def empty_distribution() -> dict[str, int]:
    return {bucket: 0 for bucket in BUCKETS}


@dataclass
class PatternSummary:
    """Summary statistics over a window of rounds, newest first.

    Attributes:
        low_streak: consecutive newest rounds below 2.0x
        minutes_since_high: minutes since the latest round >= 5.0x (999 if unknown)
        avg_multiplier: mean multiplier, 2 decimals (0 for an empty window)
        distribution: counts per bucket in BUCKETS
        total_rounds: number of rounds in the window
        last_high_multiplier: multiplier of the latest round >= 5.0x
        last_high_time: time of the latest round >= 5.0x
    """

    low_streak: int = 0
    minutes_since_high: int = MINUTES_UNKNOWN
    avg_multiplier: float = 0.0
    distribution: dict[str, int] = field(default_factory=empty_distribution)
    total_rounds: int = 0
    last_high_multiplier: float | None = None
    last_high_time: datetime | None = None

    def to_dict(self) -> JsonDict:
        data: JsonDict = {
            "low_streak": self.low_streak,
            "minutes_since_high": self.minutes_since_high,
            "avg_multiplier": self.avg_multiplier,
            "distribution": dict(self.distribution),
            "total_rounds": self.total_rounds,
        }
        if self.last_high_multiplier is not None:
            data["last_high_multiplier"] = self.last_high_multiplier
        if self.last_high_time is not None:
            data["last_high_time"] = to_iso(self.last_high_time)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PatternSummary:
        """Rebuild a summary from its stored form. Raises ValueError on malformed input."""
        if not isinstance(data, dict):
            raise ValueError(f"analysis data must be an object, got {type(data).__name__}")
        raw_dist = data.get("distribution") or {}
        if not isinstance(raw_dist, dict):
            raise ValueError(f"distribution must be an object, got {type(raw_dist).__name__}")
        distribution = empty_distribution()
        for bucket in BUCKETS:
            distribution[bucket] = int(raw_dist.get(bucket, 0))
        last_high = data.get("last_high_multiplier")
        return cls(
            low_streak=int(data["low_streak"]),
            minutes_since_high=int(data["minutes_since_high"]),
            avg_multiplier=float(data["avg_multiplier"]),
            distribution=distribution,
            total_rounds=int(data["total_rounds"]),
            last_high_multiplier=float(last_high) if last_high is not None else None,
            last_high_time=parse_timestamp(data.get("last_high_time")),
        )


@dataclass
class Signal:
    """A time-boxed prediction for one platform.

    Attributes:
        platform: venue the signal applies to
        prediction_type: WAIT_HIGH, NORMAL or CAUTION
        confidence: accumulated heuristic confidence, capped at 0.95
        suggested_range: multiplier band, or AVOID_BETTING
        reason: comma-joined justification fragments
        analysis_data: the summary the signal was derived from
        created_at: generation time
        expires_at: created_at + signal TTL
        window_start: start of the hour window the signal belongs to
        is_active: set at creation, never cleared by this package
        id: store-assigned identifier, None until persisted
    """

    platform: Platform
    prediction_type: PredictionType
    confidence: float
    suggested_range: str
    reason: str
    analysis_data: PatternSummary
    created_at: datetime
    expires_at: datetime
    window_start: datetime | None = None
    is_active: bool = True
    id: int | None = None

    @property
    def persisted(self) -> bool:
        return self.id is not None

    def is_live(self, now: datetime) -> bool:
        """Active flag set and not yet expired."""
        return self.is_active and self.expires_at > now
