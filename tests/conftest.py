"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from aviator_signals.common.types import Platform
from aviator_signals.history.models import OutcomeEvent
from aviator_signals.signals.models import PatternSummary, PredictionType, Signal
from aviator_signals.signals.tracker import SignalTracker

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


def _build_events(
    multipliers: list[float],
    newest: datetime,
    spacing: timedelta = timedelta(seconds=30),
    platform: Platform = Platform.BRAVOBET,
) -> list[OutcomeEvent]:
    """Rounds newest first, ``spacing`` apart, ending at ``newest``."""
    return [
        OutcomeEvent(multiplier=m, round_time=newest - i * spacing, platform=platform)
        for i, m in enumerate(multipliers)
    ]


def _build_signal(
    now: datetime,
    platform: Platform = Platform.BRAVOBET,
    prediction_type: PredictionType = PredictionType.WAIT_HIGH,
    confidence: float = 0.7,
    ttl: timedelta = timedelta(minutes=60),
    window_start: datetime | None = None,
) -> Signal:
    return Signal(
        platform=platform,
        prediction_type=prediction_type,
        confidence=confidence,
        suggested_range="3.5x - 8x",
        reason="16 consecutive low candles, 75min without a high candle (>=5x)",
        analysis_data=PatternSummary(
            low_streak=16,
            minutes_since_high=75,
            avg_multiplier=1.62,
            distribution={"1-2x": 150, "2-5x": 40, "5-10x": 8, "10x+": 2},
            total_rounds=200,
            last_high_multiplier=7.4,
            last_high_time=now - timedelta(minutes=75),
        ),
        created_at=now,
        expires_at=now + ttl,
        window_start=window_start,
    )


@pytest.fixture
def make_events():
    """Factory for round histories: ``make_events(multipliers, newest, ...)``."""
    return _build_events


@pytest.fixture
def make_signal():
    """Factory for unsaved signals with a typical drought summary."""
    return _build_signal


@pytest.fixture
def now():
    # 12:20 in Sao Paulo (UTC-3): an even hour, Bravobet's window
    return datetime(2026, 3, 10, 15, 20, tzinfo=timezone.utc)


@pytest.fixture
def tz():
    return SAO_PAULO


@pytest.fixture
def tmp_db():
    """Create a temporary database file for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test_signals.db"


@pytest.fixture
def tracker(tmp_db):
    """Tracker on a temporary SQLite database."""
    return SignalTracker(db_path=tmp_db, database_url="")
