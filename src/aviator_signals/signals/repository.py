"""Storage capabilities the signal pipeline depends on."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from aviator_signals.common.types import Platform
from aviator_signals.history.models import OutcomeEvent
from aviator_signals.signals.models import Signal


class SignalRepository(Protocol):
    """Read outcome history and read/append signals.

    Implementations raise ``StoreError`` on backend failures and
    ``DuplicateSignalError`` when a signal already exists for the same
    platform and hour window.
    """

    async def fetch_events(self, platform: Platform, limit: int) -> list[OutcomeEvent]:
        """Up to ``limit`` rounds for the platform, newest first."""
        ...

    async def fetch_signals_in_range(
        self, platform: Platform, start: datetime, end: datetime,
    ) -> list[Signal]:
        """Signals created in [start, end)."""
        ...

    async def insert_signal(self, signal: Signal) -> Signal:
        """Persist a signal; returns it with its assigned id."""
        ...

    async def fetch_latest_active(self, platform: Platform, now: datetime) -> Signal | None:
        """Newest signal with is_active set and expires_at after ``now``."""
        ...

    async def fetch_recent_signals(self, platform: Platform, limit: int) -> list[Signal]:
        """Newest ``limit`` signals regardless of status."""
        ...
