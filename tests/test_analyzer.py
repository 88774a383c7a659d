"""Tests for window pattern analysis."""

from __future__ import annotations

from datetime import timedelta


from aviator_signals.common.types import Platform
from aviator_signals.history.models import OutcomeEvent
from aviator_signals.signals.analyzer import analyze_patterns
from aviator_signals.signals.models import BUCKETS, MINUTES_UNKNOWN


class TestLowStreak:
    def test_stops_at_first_high(self, now, make_events):
        events = make_events([1.5, 1.8, 1.2, 2.5, 1.1], now)
        assert analyze_patterns(events, now=now).low_streak == 3

    def test_exactly_two_breaks_streak(self, now, make_events):
        events = make_events([1.99, 2.0, 1.1], now)
        assert analyze_patterns(events, now=now).low_streak == 1

    def test_streak_can_span_whole_window(self, now, make_events):
        events = make_events([1.3] * 50, now)
        assert analyze_patterns(events, now=now).low_streak == 50

    def test_newest_high_means_no_streak(self, now, make_events):
        events = make_events([3.0, 1.1, 1.2], now)
        assert analyze_patterns(events, now=now).low_streak == 0


class TestMinutesSinceHigh:
    def test_uses_most_recent_high(self, now, make_events):
        events = make_events([1.2, 6.0, 12.0], now, spacing=timedelta(minutes=10))
        summary = analyze_patterns(events, now=now)
        assert summary.minutes_since_high == 10
        assert summary.last_high_multiplier == 6.0
        assert summary.last_high_time == now - timedelta(minutes=10)

    def test_floors_partial_minutes(self, now):
        events = [OutcomeEvent(5.0, now - timedelta(minutes=44, seconds=59), Platform.BRAVOBET)]
        assert analyze_patterns(events, now=now).minutes_since_high == 44

    def test_no_high_gives_sentinel(self, now, make_events):
        events = make_events([1.2, 3.0, 4.99], now)
        summary = analyze_patterns(events, now=now)
        assert summary.minutes_since_high == MINUTES_UNKNOWN
        assert summary.last_high_multiplier is None
        assert summary.last_high_time is None

    def test_unreadable_time_gives_sentinel(self, now):
        events = [
            OutcomeEvent(1.1, now, Platform.BRAVOBET),
            OutcomeEvent(8.0, None, Platform.BRAVOBET),
        ]
        summary = analyze_patterns(events, now=now)
        assert summary.minutes_since_high == MINUTES_UNKNOWN
        assert summary.last_high_multiplier == 8.0

    def test_future_timestamp_clamped_to_zero(self, now):
        events = [OutcomeEvent(9.0, now + timedelta(minutes=7), Platform.BRAVOBET)]
        assert analyze_patterns(events, now=now).minutes_since_high == 0

    def test_naive_round_time_treated_as_utc(self, now):
        naive = (now - timedelta(minutes=30)).replace(tzinfo=None)
        events = [OutcomeEvent(5.5, naive, Platform.BRAVOBET)]
        assert analyze_patterns(events, now=now).minutes_since_high == 30


class TestAverage:
    def test_rounded_to_two_places(self, now, make_events):
        events = make_events([1.0, 2.0, 2.0], now)
        assert analyze_patterns(events, now=now).avg_multiplier == 1.67

    def test_half_rounds_up(self, now, make_events):
        events = make_events([1.005, 1.005], now)
        assert analyze_patterns(events, now=now).avg_multiplier == 1.01


class TestDistribution:
    def test_bucket_edges(self, now, make_events):
        events = make_events([1.0, 1.99, 2.0, 4.99, 5.0, 9.99, 10.0, 250.0], now)
        dist = analyze_patterns(events, now=now).distribution
        assert dist == {"1-2x": 2, "2-5x": 2, "5-10x": 2, "10x+": 2}

    def test_below_one_is_not_counted(self, now, make_events):
        events = make_events([0.5, 1.5, 0.99], now)
        summary = analyze_patterns(events, now=now)
        assert summary.distribution["1-2x"] == 1
        assert sum(summary.distribution.values()) == 1
        assert summary.total_rounds == 3

    def test_buckets_never_exceed_total(self, now, make_events):
        multipliers = [0.8, 1.0, 1.4, 2.2, 3.3, 5.1, 7.7, 11.0, 1.9, 0.95]
        summary = analyze_patterns(make_events(multipliers, now), now=now)
        assert set(summary.distribution) == set(BUCKETS)
        counted = sum(summary.distribution.values())
        assert counted == sum(1 for m in multipliers if m >= 1)
        assert counted <= summary.total_rounds


def test_empty_window(now):
    summary = analyze_patterns([], now=now)
    assert summary.low_streak == 0
    assert summary.minutes_since_high == 999
    assert summary.avg_multiplier == 0
    assert summary.distribution == {"1-2x": 0, "2-5x": 0, "5-10x": 0, "10x+": 0}
    assert summary.total_rounds == 0


def test_total_rounds_is_window_size(now, make_events):
    events = make_events([1.5, 2.5, 3.5], now)
    assert analyze_patterns(events, now=now).total_rounds == 3
