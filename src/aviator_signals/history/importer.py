"""Load exported round history from JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from aviator_signals.history.models import InvalidOutcomeRow, OutcomeEvent, parse_outcome_row

logger = logging.getLogger(__name__)


def load_history_file(path: Path) -> tuple[list[OutcomeEvent], int]:
    """Read a JSON array of ``{multiplier, round_time, platform}`` records.

    Returns the valid events and the number of records skipped. Raises
    ValueError if the file is not a JSON array.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of records")

    events: list[OutcomeEvent] = []
    skipped = 0
    for i, record in enumerate(data):
        if not isinstance(record, dict):
            skipped += 1
            continue
        try:
            events.append(parse_outcome_row(record, require_time=True))
        except InvalidOutcomeRow as exc:
            logger.debug("Skipping record %d in %s: %s", i, path, exc)
            skipped += 1

    if skipped:
        logger.warning("Skipped %d invalid record(s) in %s", skipped, path)
    return events, skipped
