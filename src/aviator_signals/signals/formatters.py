"""Signal output formatters: Rich table, JSON, Telegram."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from rich.console import Console
from rich.table import Table

from aviator_signals.common.clock import to_iso, utcnow
from aviator_signals.common.types import JsonDict
from aviator_signals.signals.models import PredictionType, Signal

_TYPE_STYLE = {
    PredictionType.WAIT_HIGH: ("green", "WAIT FOR HIGH"),
    PredictionType.NORMAL: ("yellow", "NORMAL"),
    PredictionType.CAUTION: ("red", "CAUTION"),
    PredictionType.IA_MATH: ("cyan", "IA MATH"),
}


def signal_to_dict(signal: Signal) -> JsonDict:
    return {
        "id": signal.id,
        "platform": signal.platform.value,
        "prediction_type": signal.prediction_type.value,
        "confidence": signal.confidence,
        "suggested_range": signal.suggested_range,
        "reason": signal.reason,
        "analysis_data": signal.analysis_data.to_dict(),
        "created_at": to_iso(signal.created_at),
        "expires_at": to_iso(signal.expires_at),
        "is_active": signal.is_active,
    }


def format_table(
    signals: list[Signal],
    console: Console | None = None,
    now: datetime | None = None,
) -> None:
    """Print signals as a Rich table, newest first."""
    if console is None:
        console = Console()
    if now is None:
        now = utcnow()

    if not signals:
        console.print("[yellow]No signals.[/yellow]")
        return

    table = Table(title="Aviator Signals", show_lines=True)
    table.add_column("ID", justify="right", no_wrap=True)
    table.add_column("Platform", no_wrap=True)
    table.add_column("Signal", style="bold")
    table.add_column("Conf", justify="right", no_wrap=True)
    table.add_column("Range")
    table.add_column("Created")
    table.add_column("Status", no_wrap=True, min_width=7)
    table.add_column("Reason")

    for s in sorted(signals, key=lambda s: s.created_at, reverse=True):
        color, label = _TYPE_STYLE[s.prediction_type]
        status = "[green]ACTIVE[/green]" if s.is_live(now) else "[dim]EXPIRED[/dim]"
        table.add_row(
            str(s.id) if s.id is not None else "-",
            s.platform.value,
            f"[{color}]{label}[/{color}]",
            f"{s.confidence:.0%}",
            s.suggested_range,
            s.created_at.astimezone(timezone.utc).strftime("%m-%d %H:%M"),
            status,
            s.reason,
        )

    console.print(table)


def format_json(signals: list[Signal]) -> str:
    """Format signals as a JSON string."""
    return json.dumps([signal_to_dict(s) for s in signals], indent=2)


def format_telegram_signal(signal: Signal) -> str:
    """Format a single signal for Telegram (Markdown)."""
    _, label = _TYPE_STYLE[signal.prediction_type]
    icon = {
        PredictionType.WAIT_HIGH: "\U0001f4c8",
        PredictionType.CAUTION: "\u26a0\ufe0f",
    }.get(signal.prediction_type, "\U0001f4ca")
    data = signal.analysis_data
    lines = [
        f"{icon} *{label}* \u2014 {signal.platform.value}",
        "",
        f"\U0001f3af Range: {signal.suggested_range}",
        f"\U0001f4aa Confidence: {signal.confidence:.0%}",
        f"\U0001f4cb {signal.reason}",
        "",
        f"Low streak: {data.low_streak} | Avg: {data.avg_multiplier}x | Rounds: {data.total_rounds}",
        f"\u23f0 Valid until {signal.expires_at.astimezone(timezone.utc).strftime('%H:%M UTC')}",
    ]
    return "\n".join(lines)
