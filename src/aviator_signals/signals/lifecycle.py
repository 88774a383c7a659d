"""Signal lifecycle: hourly dedup, generation, persistence and lookup."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from aviator_signals.common.clock import ensure_aware, hour_window, utcnow
from aviator_signals.common.types import Platform
from aviator_signals.config import get_settings
from aviator_signals.signals.analyzer import analyze_patterns
from aviator_signals.signals.classifier import classify
from aviator_signals.signals.models import Signal
from aviator_signals.signals.repository import SignalRepository
from aviator_signals.signals.tracker import DuplicateSignalError, StoreError

logger = logging.getLogger(__name__)

SignalListener = Callable[[Signal], Awaitable[None] | None]


class SignalManager:
    """Generate at most one signal per platform per hour and serve lookups.

    Store failures never reach the caller: they are logged and turned into
    ``None`` or an empty list.
    """

    def __init__(
        self,
        repository: SignalRepository,
        window_size: int | None = None,
        ttl_minutes: int | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        settings = get_settings()
        self._repo = repository
        self._window_size = window_size if window_size is not None else settings.history_window
        self._ttl = timedelta(
            minutes=ttl_minutes if ttl_minutes is not None else settings.signal_ttl_minutes,
        )
        self._tz = tz or settings.tz
        self._listeners: list[SignalListener] = []

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    def subscribe(self, listener: SignalListener) -> None:
        """Call ``listener`` with every newly persisted signal."""
        self._listeners.append(listener)

    async def _notify(self, signal: Signal) -> None:
        for listener in self._listeners:
            try:
                result = listener(signal)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.warning("Signal listener %r failed", listener, exc_info=True)

    async def generate_signal(
        self, platform: Platform, now: datetime | None = None,
    ) -> Signal | None:
        """Derive and store a signal unless one exists for the current hour.

        Returns None on a dedup hit, a history fetch failure or an empty
        history. If saving fails the unpersisted signal is still returned.
        """
        now = ensure_aware(now) if now is not None else utcnow()
        start, end = hour_window(now, self._tz)

        try:
            existing = await self._repo.fetch_signals_in_range(platform, start, end)
        except StoreError:
            logger.error("Dedup check failed for %s", platform.value, exc_info=True)
            return None
        if existing:
            logger.info(
                "Signal %s already covers %s window starting %s",
                existing[0].id, platform.value, start.isoformat(),
            )
            return None

        try:
            events = await self._repo.fetch_events(platform, self._window_size)
        except StoreError:
            logger.error("Failed to fetch history for %s", platform.value, exc_info=True)
            return None
        if not events:
            logger.warning("No round history for %s, skipping signal", platform.value)
            return None

        summary = analyze_patterns(events, now=now)
        signal = classify(platform, summary, now=now, ttl=self._ttl)
        signal.window_start = start

        try:
            saved = await self._repo.insert_signal(signal)
        except DuplicateSignalError:
            logger.info("Concurrent signal for %s window %s won the insert", platform.value, start.isoformat())
            return None
        except StoreError:
            logger.error("Failed to save signal for %s; returning it unsaved", platform.value, exc_info=True)
            return signal

        logger.info(
            "Signal %s for %s: %s (confidence %.2f)",
            saved.id, platform.value, saved.prediction_type.value, saved.confidence,
        )
        await self._notify(saved)
        return saved

    async def get_active_signal(
        self, platform: Platform, now: datetime | None = None,
    ) -> Signal | None:
        """Newest signal that is active and unexpired, or None."""
        now = ensure_aware(now) if now is not None else utcnow()
        try:
            signal = await self._repo.fetch_latest_active(platform, now)
        except StoreError:
            logger.error("Failed to load active signal for %s", platform.value, exc_info=True)
            return None
        # Guard against stores that ignore the expiry filter
        if signal is not None and not signal.is_live(now):
            return None
        return signal

    async def get_recent_signals(self, platform: Platform, limit: int = 10) -> list[Signal]:
        """Newest ``limit`` signals, expired ones included."""
        try:
            return await self._repo.fetch_recent_signals(platform, limit)
        except StoreError:
            logger.error("Failed to load recent signals for %s", platform.value, exc_info=True)
            return []
