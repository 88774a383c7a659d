"""Outcome history and signal store with PostgreSQL and SQLite backends."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import asyncpg

from aviator_signals.common.clock import parse_timestamp, to_iso
from aviator_signals.common.types import Platform
from aviator_signals.config import get_settings
from aviator_signals.history.models import OutcomeEvent, parse_outcome_rows
from aviator_signals.signals.models import PatternSummary, PredictionType, Signal

logger = logging.getLogger(__name__)

_SQLITE_CREATE_HISTORY = """
CREATE TABLE IF NOT EXISTS crash_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    platform TEXT NOT NULL,
    multiplier REAL NOT NULL,
    round_time TEXT NOT NULL,
    UNIQUE (platform, multiplier, round_time)
);
"""

_SQLITE_CREATE_SIGNALS = """
CREATE TABLE IF NOT EXISTS signals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT NOT NULL,
    platform TEXT NOT NULL,
    prediction_type TEXT NOT NULL,
    confidence REAL NOT NULL,
    suggested_range TEXT NOT NULL,
    reason TEXT NOT NULL,
    analysis_data TEXT NOT NULL,  -- JSON PatternSummary
    expires_at TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    window_start TEXT NOT NULL
);
"""

_PG_CREATE_HISTORY = """
CREATE TABLE IF NOT EXISTS crash_history (
    id SERIAL PRIMARY KEY,
    platform TEXT NOT NULL,
    multiplier DOUBLE PRECISION NOT NULL,
    round_time TEXT NOT NULL,
    UNIQUE (platform, multiplier, round_time)
);
"""

_PG_CREATE_SIGNALS = """
CREATE TABLE IF NOT EXISTS signals (
    id SERIAL PRIMARY KEY,
    created_at TEXT NOT NULL,
    platform TEXT NOT NULL,
    prediction_type TEXT NOT NULL,
    confidence DOUBLE PRECISION NOT NULL,
    suggested_range TEXT NOT NULL,
    reason TEXT NOT NULL,
    analysis_data TEXT NOT NULL,  -- JSON PatternSummary
    expires_at TEXT NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    window_start TEXT NOT NULL
);
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_history_platform_time ON crash_history(platform, round_time);",
    "CREATE INDEX IF NOT EXISTS idx_signals_platform_created ON signals(platform, created_at);",
    # At most one signal per platform per hour window
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_signals_platform_window ON signals(platform, window_start);",
)

_SIGNAL_COLUMNS = (
    "id, created_at, platform, prediction_type, confidence, suggested_range, "
    "reason, analysis_data, expires_at, is_active, window_start"
)


class StoreError(Exception):
    """The backing database could not be read or written."""


class DuplicateSignalError(StoreError):
    """A signal already exists for this platform and hour window."""


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (aiosqlite.Error, asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
        raise StoreError(f"{action} failed: {exc}") from exc


def _decode_signal(row: Mapping) -> Signal:
    """Build a Signal from a stored row. Raises on malformed rows."""
    created_at = parse_timestamp(row["created_at"])
    expires_at = parse_timestamp(row["expires_at"])
    if created_at is None or expires_at is None:
        raise ValueError("unreadable created_at/expires_at")
    return Signal(
        id=int(row["id"]),
        platform=Platform(row["platform"]),
        prediction_type=PredictionType(row["prediction_type"]),
        confidence=float(row["confidence"]),
        suggested_range=str(row["suggested_range"]),
        reason=str(row["reason"]),
        analysis_data=PatternSummary.from_dict(json.loads(row["analysis_data"])),
        created_at=created_at,
        expires_at=expires_at,
        window_start=parse_timestamp(row["window_start"]),
        is_active=bool(row["is_active"]),
    )


def _decode_signals(rows: Iterable[Mapping]) -> list[Signal]:
    signals: list[Signal] = []
    for row in rows:
        try:
            signals.append(_decode_signal(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Quarantined signal row id=%s: %s", row.get("id"), exc)
    return signals


def _window_key(signal: Signal) -> str:
    if signal.window_start is not None:
        return to_iso(signal.window_start)
    hour = signal.created_at.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
    return to_iso(hour)


class SignalTracker:
    """Signal store with PostgreSQL (via asyncpg) or SQLite (via aiosqlite) backend.

    Holds both the round history read by the analyzer and the signals it
    produces. Every backend failure surfaces as StoreError.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        database_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._database_url = settings.database_url if database_url is None else database_url
        self._use_pg = bool(self._database_url)
        self._db_path = Path(db_path) if db_path is not None else settings.db_path
        self._pool = None  # asyncpg pool, created lazily
        self._pool_lock = asyncio.Lock()
        self._ready = False

    async def _get_pool(self):
        """Get or create the asyncpg connection pool."""
        if self._pool is None:
            async with self._pool_lock:
                if self._pool is None:
                    self._pool = await asyncpg.create_pool(
                        self._database_url, min_size=1, max_size=5,
                    )
        return self._pool

    async def close(self) -> None:
        """Close the connection pool, if open."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        if self._ready:
            return
        with _store_errors("schema setup"):
            if self._use_pg:
                pool = await self._get_pool()
                async with pool.acquire() as conn:
                    await conn.execute(_PG_CREATE_HISTORY)
                    await conn.execute(_PG_CREATE_SIGNALS)
                    for stmt in _CREATE_INDEXES:
                        await conn.execute(stmt)
            else:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                async with aiosqlite.connect(str(self._db_path)) as db:
                    await db.execute(_SQLITE_CREATE_HISTORY)
                    await db.execute(_SQLITE_CREATE_SIGNALS)
                    for stmt in _CREATE_INDEXES:
                        await db.execute(stmt)
                    await db.commit()
        self._ready = True

    # -- round history -------------------------------------------------

    async def fetch_events(self, platform: Platform, limit: int) -> list[OutcomeEvent]:
        """Get up to ``limit`` rounds for a platform, newest first.

        Rows that fail validation are logged and dropped.
        """
        await self._ensure_db()
        with _store_errors(f"fetching history for {platform.value}"):
            if self._use_pg:
                pool = await self._get_pool()
                async with pool.acquire() as conn:
                    rows = await conn.fetch(
                        """SELECT multiplier, round_time, platform FROM crash_history
                           WHERE platform = $1 ORDER BY round_time DESC LIMIT $2""",
                        platform.value, limit,
                    )
            else:
                async with aiosqlite.connect(str(self._db_path)) as db:
                    db.row_factory = aiosqlite.Row
                    cursor = await db.execute(
                        """SELECT multiplier, round_time, platform FROM crash_history
                           WHERE platform = ? ORDER BY round_time DESC LIMIT ?""",
                        (platform.value, limit),
                    )
                    rows = await cursor.fetchall()
        return parse_outcome_rows([dict(row) for row in rows])

    async def import_events(self, events: Iterable[OutcomeEvent]) -> int:
        """Insert rounds, ignoring exact duplicates. Returns rows inserted."""
        await self._ensure_db()
        params = []
        for event in events:
            if event.round_time is None:
                logger.warning("Not importing %s round without a round_time", event.platform.value)
                continue
            params.append((event.platform.value, event.multiplier, to_iso(event.round_time)))
        if not params:
            return 0

        inserted = 0
        with _store_errors("importing history"):
            if self._use_pg:
                pool = await self._get_pool()
                async with pool.acquire() as conn:
                    async with conn.transaction():
                        for p in params:
                            # asyncpg returns e.g. "INSERT 0 1"
                            result = await conn.execute(
                                """INSERT INTO crash_history (platform, multiplier, round_time)
                                   VALUES ($1, $2, $3) ON CONFLICT DO NOTHING""",
                                *p,
                            )
                            inserted += int(result.split()[-1])
            else:
                async with aiosqlite.connect(str(self._db_path)) as db:
                    for p in params:
                        cursor = await db.execute(
                            """INSERT OR IGNORE INTO crash_history (platform, multiplier, round_time)
                               VALUES (?, ?, ?)""",
                            p,
                        )
                        inserted += cursor.rowcount
                    await db.commit()
        logger.info("Imported %d of %d round(s)", inserted, len(params))
        return inserted

    async def purge_future_events(self, now: datetime) -> int:
        """Delete rounds stamped later than ``now``. Returns rows deleted."""
        await self._ensure_db()
        cutoff = to_iso(now)
        with _store_errors("purging future rounds"):
            if self._use_pg:
                pool = await self._get_pool()
                async with pool.acquire() as conn:
                    result = await conn.execute(
                        "DELETE FROM crash_history WHERE round_time > $1", cutoff,
                    )
                    return int(result.split()[-1])
            else:
                async with aiosqlite.connect(str(self._db_path)) as db:
                    cursor = await db.execute(
                        "DELETE FROM crash_history WHERE round_time > ?", (cutoff,),
                    )
                    await db.commit()
                    return cursor.rowcount

    # -- signals -------------------------------------------------------

    async def insert_signal(self, signal: Signal) -> Signal:
        """Persist a signal and return it with its assigned id.

        Raises DuplicateSignalError if the platform already has a signal
        for the same hour window.
        """
        await self._ensure_db()
        params = (
            to_iso(signal.created_at),
            signal.platform.value,
            signal.prediction_type.value,
            signal.confidence,
            signal.suggested_range,
            signal.reason,
            json.dumps(signal.analysis_data.to_dict()),
            to_iso(signal.expires_at),
            signal.is_active,
            _window_key(signal),
        )
        with _store_errors(f"saving signal for {signal.platform.value}"):
            try:
                if self._use_pg:
                    pool = await self._get_pool()
                    async with pool.acquire() as conn:
                        row = await conn.fetchrow(
                            """INSERT INTO signals
                               (created_at, platform, prediction_type, confidence,
                                suggested_range, reason, analysis_data, expires_at,
                                is_active, window_start)
                               VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                               RETURNING id""",
                            *params,
                        )
                        row_id = row["id"]
                else:
                    async with aiosqlite.connect(str(self._db_path)) as db:
                        cursor = await db.execute(
                            """INSERT INTO signals
                               (created_at, platform, prediction_type, confidence,
                                suggested_range, reason, analysis_data, expires_at,
                                is_active, window_start)
                               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                            params,
                        )
                        await db.commit()
                        row_id = cursor.lastrowid
            except (aiosqlite.IntegrityError, asyncpg.UniqueViolationError) as exc:
                raise DuplicateSignalError(
                    f"signal for {signal.platform.value} window {params[-1]} already exists"
                ) from exc

        signal.id = row_id
        return signal

    async def _select_signals(self, where: str, args: tuple, limit: int | None = None) -> list[Signal]:
        """Run a signals query. ``where`` uses ``{}`` for each placeholder."""
        await self._ensure_db()
        with _store_errors("reading signals"):
            if self._use_pg:
                placeholders = [f"${i}" for i in range(1, len(args) + 2)]
                query = f"SELECT {_SIGNAL_COLUMNS} FROM signals WHERE " + where.format(*placeholders)
                query += " ORDER BY created_at DESC, id DESC"
                if limit is not None:
                    query += f" LIMIT {placeholders[len(args)]}"
                    args = (*args, limit)
                pool = await self._get_pool()
                async with pool.acquire() as conn:
                    rows = await conn.fetch(query, *args)
            else:
                query = f"SELECT {_SIGNAL_COLUMNS} FROM signals WHERE " + where.format(*["?"] * len(args))
                query += " ORDER BY created_at DESC, id DESC"
                if limit is not None:
                    query += " LIMIT ?"
                    args = (*args, limit)
                async with aiosqlite.connect(str(self._db_path)) as db:
                    db.row_factory = aiosqlite.Row
                    cursor = await db.execute(query, args)
                    rows = await cursor.fetchall()
        return _decode_signals(dict(row) for row in rows)

    async def fetch_signals_in_range(
        self, platform: Platform, start: datetime, end: datetime,
    ) -> list[Signal]:
        """Signals for a platform created in [start, end), newest first."""
        return await self._select_signals(
            "platform = {} AND created_at >= {} AND created_at < {}",
            (platform.value, to_iso(start), to_iso(end)),
        )

    async def fetch_latest_active(self, platform: Platform, now: datetime) -> Signal | None:
        """Newest signal that is flagged active and not yet expired."""
        # No LIMIT: a quarantined newest row must not hide an older valid one
        signals = await self._select_signals(
            "platform = {} AND is_active = {} AND expires_at > {}",
            (platform.value, True, to_iso(now)),
        )
        return signals[0] if signals else None

    async def fetch_recent_signals(self, platform: Platform, limit: int) -> list[Signal]:
        """Newest signals for a platform regardless of expiry."""
        return await self._select_signals("platform = {}", (platform.value,), limit=limit)
