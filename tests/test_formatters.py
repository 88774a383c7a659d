"""Tests for signal output formatters."""

from __future__ import annotations

import json
from datetime import timedelta

from rich.console import Console

from aviator_signals.common.types import Platform
from aviator_signals.signals.formatters import format_json, format_table, format_telegram_signal
from aviator_signals.signals.models import AVOID_BETTING, PredictionType


def _console() -> Console:
    return Console(record=True, width=200)


class TestFormatTable:
    def test_empty(self, now):
        console = _console()
        format_table([], console, now=now)
        assert "No signals" in console.export_text()

    def test_rows_and_status(self, now, make_signal):
        live = make_signal(now)
        live.id = 2
        expired = make_signal(now - timedelta(hours=3), platform=Platform.SUPERBET)
        expired.id = 1
        console = _console()

        format_table([expired, live], console, now=now)

        text = console.export_text()
        assert "WAIT FOR HIGH" in text
        assert "ACTIVE" in text
        assert "EXPIRED" in text
        assert "superbet" in text
        assert text.index("bravobet") < text.index("superbet")

    def test_fits_narrow_terminal(self, now, make_signal):
        live = make_signal(now)
        live.id = 12
        expired = make_signal(now - timedelta(hours=3))
        expired.id = 11
        console = Console(record=True, width=80)

        format_table([live, expired], console, now=now)

        text = console.export_text()
        assert max(len(line) for line in text.splitlines()) <= 80
        assert "ACTIVE" in text
        assert "EXPIRED" in text
        assert "bravobet" in text
        assert "70%" in text

    def test_unsaved_signal_has_dash_id(self, now, make_signal):
        console = _console()
        format_table([make_signal(now)], console, now=now)
        assert "-" in console.export_text()


class TestFormatJson:
    def test_fields(self, now, make_signal):
        signal = make_signal(now)
        signal.id = 7

        [data] = json.loads(format_json([signal]))

        assert data["id"] == 7
        assert data["platform"] == "bravobet"
        assert data["prediction_type"] == "WAIT_HIGH"
        assert data["confidence"] == 0.7
        assert data["suggested_range"] == "3.5x - 8x"
        assert data["is_active"] is True
        assert data["analysis_data"]["low_streak"] == 16
        assert data["analysis_data"]["distribution"]["1-2x"] == 150
        assert data["created_at"].startswith("2026-03-10T15:20:00")

    def test_empty_list(self):
        assert json.loads(format_json([])) == []


class TestFormatTelegramSignal:
    def test_contains_key_fields(self, now, make_signal):
        text = format_telegram_signal(make_signal(now))
        assert "*WAIT FOR HIGH*" in text
        assert "bravobet" in text
        assert "3.5x - 8x" in text
        assert "70%" in text
        assert "16 consecutive low candles" in text
        assert "Valid until 16:20 UTC" in text

    def test_caution(self, now, make_signal):
        signal = make_signal(now, prediction_type=PredictionType.CAUTION, confidence=0.1)
        signal.suggested_range = AVOID_BETTING
        text = format_telegram_signal(signal)
        assert "*CAUTION*" in text
        assert AVOID_BETTING in text
