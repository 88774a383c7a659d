"""Tests for outcome row validation and history file import."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from aviator_signals.common.types import Platform
from aviator_signals.history.importer import load_history_file
from aviator_signals.history.models import InvalidOutcomeRow, parse_outcome_row, parse_outcome_rows


class TestParseOutcomeRow:
    def test_valid_row(self):
        event = parse_outcome_row(
            {"multiplier": "2.45", "round_time": "2026-03-10T15:00:00Z", "platform": "Superbet"}
        )
        assert event.multiplier == 2.45
        assert event.round_time == datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)
        assert event.platform is Platform.SUPERBET

    def test_offset_timestamp_kept_aware(self):
        event = parse_outcome_row(
            {"multiplier": 1.2, "round_time": "2026-03-10T12:00:00-03:00", "platform": "bravobet"}
        )
        assert event.round_time == datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("multiplier", [None, "abc", 0, -1.5, float("nan"), float("inf"), True])
    def test_bad_multiplier_rejected(self, multiplier):
        with pytest.raises(InvalidOutcomeRow):
            parse_outcome_row({"multiplier": multiplier, "round_time": "2026-03-10T15:00:00Z", "platform": "bravobet"})

    def test_below_one_is_valid(self):
        event = parse_outcome_row({"multiplier": 0.5, "round_time": None, "platform": "bravobet"})
        assert event.multiplier == 0.5

    def test_unknown_platform_rejected(self):
        with pytest.raises(InvalidOutcomeRow):
            parse_outcome_row({"multiplier": 1.5, "round_time": "2026-03-10T15:00:00Z", "platform": "esportivabet"})

    def test_unreadable_time_kept_as_none(self):
        event = parse_outcome_row({"multiplier": 7.0, "round_time": "yesterday", "platform": "bravobet"})
        assert event.round_time is None

    def test_unreadable_time_rejected_when_required(self):
        with pytest.raises(InvalidOutcomeRow):
            parse_outcome_row(
                {"multiplier": 7.0, "round_time": "yesterday", "platform": "bravobet"},
                require_time=True,
            )


def test_parse_rows_quarantines_invalid(caplog):
    rows = [
        {"multiplier": 1.5, "round_time": "2026-03-10T15:00:00Z", "platform": "bravobet"},
        {"multiplier": None, "round_time": "2026-03-10T14:59:00Z", "platform": "bravobet"},
        {"multiplier": 3.1, "round_time": "2026-03-10T14:58:00Z", "platform": "bravobet"},
    ]
    with caplog.at_level("WARNING"):
        events = parse_outcome_rows(rows)
    assert [e.multiplier for e in events] == [1.5, 3.1]
    assert "Quarantined" in caplog.text


class TestLoadHistoryFile:
    def test_loads_valid_and_counts_invalid(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps([
            {"multiplier": 1.5, "round_time": "2026-03-10T15:00:00Z", "platform": "bravobet"},
            {"multiplier": 12.0, "round_time": "2026-03-10T14:59:30Z", "platform": "superbet"},
            {"multiplier": 2.0, "round_time": "not a time", "platform": "bravobet"},
            "garbage",
            {"multiplier": -3, "round_time": "2026-03-10T14:59:00Z", "platform": "bravobet"},
        ]))

        events, skipped = load_history_file(path)

        assert [e.multiplier for e in events] == [1.5, 12.0]
        assert skipped == 3

    def test_rejects_non_array(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"multiplier": 1.5}))
        with pytest.raises(ValueError, match="JSON array"):
            load_history_file(path)
