"""Outcome event model and row validation at the store boundary."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from aviator_signals.common.clock import parse_timestamp
from aviator_signals.common.types import Platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutcomeEvent:
    """One resolved round.

    Attributes:
        multiplier: crash multiplier of the round (> 0)
        round_time: resolution time, None if the stored value was unreadable
        platform: venue the round was played on
    """

    multiplier: float
    round_time: datetime | None
    platform: Platform


class InvalidOutcomeRow(ValueError):
    """A raw outcome record failed shape validation."""


def parse_platform(value: object) -> Platform:
    if isinstance(value, Platform):
        return value
    try:
        return Platform(str(value).strip().lower())
    except ValueError:
        raise InvalidOutcomeRow(f"unknown platform {value!r}") from None


def parse_outcome_row(raw: dict, require_time: bool = False) -> OutcomeEvent:
    """Validate a loosely typed record into an OutcomeEvent.

    Raises InvalidOutcomeRow if the multiplier or platform is unusable.
    An unparseable round time is kept as None unless ``require_time``.
    """
    value = raw.get("multiplier")
    if isinstance(value, bool):
        raise InvalidOutcomeRow(f"multiplier is not a number: {value!r}")
    try:
        multiplier = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidOutcomeRow(f"multiplier is not a number: {value!r}") from None
    if not math.isfinite(multiplier) or multiplier <= 0:
        raise InvalidOutcomeRow(f"multiplier out of range: {multiplier!r}")

    platform = parse_platform(raw.get("platform"))

    round_time = parse_timestamp(raw.get("round_time"))
    if round_time is None and require_time:
        raise InvalidOutcomeRow(f"unreadable round_time: {raw.get('round_time')!r}")

    return OutcomeEvent(multiplier=multiplier, round_time=round_time, platform=platform)


def parse_outcome_rows(rows: list[dict], require_time: bool = False) -> list[OutcomeEvent]:
    """Parse rows, quarantining (logging and dropping) the invalid ones."""
    events: list[OutcomeEvent] = []
    for row in rows:
        try:
            events.append(parse_outcome_row(row, require_time=require_time))
        except InvalidOutcomeRow as exc:
            logger.warning("Quarantined outcome row %r: %s", row, exc)
    return events
