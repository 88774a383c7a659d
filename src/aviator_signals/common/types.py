"""Shared types and numeric helpers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TypeAlias

# JSON-like dict
JsonDict: TypeAlias = dict[str, object]


class Platform(Enum):
    """Supported betting venues."""

    BRAVOBET = "bravobet"
    SUPERBET = "superbet"


def round_half_up(value: float, places: int = 2) -> float:
    """Round half away from zero, unlike the builtin banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
