"""Scheduled analysis cycle.

Each run analyzes the platform whose alternating-hour window is open and
stores at most one signal for it per hour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from aviator_signals.common.clock import ensure_aware, utcnow
from aviator_signals.common.types import Platform
from aviator_signals.config import get_settings
from aviator_signals.notifications.telegram import TelegramNotifier
from aviator_signals.signals.lifecycle import SignalManager
from aviator_signals.signals.models import Signal
from aviator_signals.signals.schedule import active_platform
from aviator_signals.signals.tracker import SignalTracker

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one scheduled run."""

    platform: Platform
    hour: int
    timestamp: datetime
    signal: Signal | None

    @property
    def success(self) -> bool:
        return self.signal is not None


def build_manager(tracker: SignalTracker | None = None) -> tuple[SignalManager, list]:
    """Wire a SignalManager to the configured store and notifiers.

    Returns the manager and the resources the caller must close.
    """
    settings = get_settings()
    tracker = tracker or SignalTracker()
    manager = SignalManager(tracker)
    resources: list = [tracker]

    if settings.telegram_enabled:
        notifier = TelegramNotifier()
        if notifier.enabled:
            manager.subscribe(notifier)
            resources.append(notifier)
        else:
            logger.warning("telegram_enabled is set but bot token or chat id is missing")

    return manager, resources


async def run_cycle(manager: SignalManager, now: datetime | None = None) -> CycleResult:
    """Generate the hourly signal for the currently active platform."""
    now = ensure_aware(now) if now is not None else utcnow()
    platform = active_platform(manager.tz, now)
    hour = now.astimezone(manager.tz).hour

    logger.info("Cycle at %s (hour %02d): analyzing %s", now.isoformat(), hour, platform.value)
    signal = await manager.generate_signal(platform, now=now)
    if signal is None:
        logger.info("No new signal for %s this cycle", platform.value)

    return CycleResult(platform=platform, hour=hour, timestamp=now, signal=signal)
