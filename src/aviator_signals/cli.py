"""Typer CLI: aviator-signals generate, cycle, active, history, window, import-history."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from aviator_signals.common.types import Platform

app = typer.Typer(
    name="aviator-signals",
    help="Aviator round analysis and hourly signal generator",
    no_args_is_help=True,
)
console = Console()


def _parse_platform(value: str) -> Platform:
    try:
        return Platform(value.lower())
    except ValueError:
        choices = ", ".join(p.value for p in Platform)
        raise typer.BadParameter(f"unknown platform {value!r} (choose from {choices})")


async def _close_all(resources: list) -> None:
    for resource in resources:
        await resource.close()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l",
        help="Logging level (default from LOG_LEVEL, WARNING)",
    ),
) -> None:
    """Configure logging for all commands."""
    from aviator_signals.config import get_settings

    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def generate(
    platform: Optional[str] = typer.Argument(
        None, help="bravobet or superbet (default: platform whose hour is active)",
    ),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Generate a signal unless one already exists for the current hour."""
    from aviator_signals.pipeline import build_manager
    from aviator_signals.signals.formatters import format_json, format_table
    from aviator_signals.signals.schedule import active_platform

    requested = _parse_platform(platform) if platform else None

    async def _run() -> None:
        manager, resources = build_manager()
        target = requested or active_platform(manager.tz)
        try:
            signal = await manager.generate_signal(target)
        finally:
            await _close_all(resources)

        if signal is None:
            console.print(
                f"[yellow]No new signal for {target.value} "
                "(already generated this hour, or no history).[/yellow]"
            )
            return
        if not signal.persisted:
            console.print("[red]Signal could not be saved; showing unsaved result.[/red]")
        if output == "json":
            console.print(format_json([signal]))
        else:
            format_table([signal], console)

    asyncio.run(_run())


@app.command()
def cycle(
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Run one scheduled cycle for the platform whose window is active."""
    from aviator_signals.pipeline import build_manager, run_cycle
    from aviator_signals.signals.formatters import format_table, signal_to_dict

    async def _run() -> None:
        manager, resources = build_manager()
        try:
            result = await run_cycle(manager)
        finally:
            await _close_all(resources)

        if output == "json":
            console.print(json.dumps({
                "success": result.success,
                "platform": result.platform.value,
                "hour": result.hour,
                "timestamp": result.timestamp.isoformat(),
                "signal": signal_to_dict(result.signal) if result.signal else None,
            }, indent=2))
        elif result.signal is None:
            console.print(f"[yellow]Hour {result.hour:02d}: no new signal for {result.platform.value}.[/yellow]")
        else:
            format_table([result.signal], console)

    asyncio.run(_run())


@app.command()
def active(
    platform: str = typer.Argument(help="bravobet or superbet"),
) -> None:
    """Show the current active (unexpired) signal for a platform."""
    from aviator_signals.pipeline import build_manager
    from aviator_signals.signals.formatters import format_table

    target = _parse_platform(platform)

    async def _run() -> None:
        manager, resources = build_manager()
        try:
            signal = await manager.get_active_signal(target)
        finally:
            await _close_all(resources)

        if signal is None:
            console.print(f"[yellow]No active signal for {target.value}. Waiting for analysis.[/yellow]")
            return
        format_table([signal], console)

    asyncio.run(_run())


@app.command()
def history(
    platform: str = typer.Argument(help="bravobet or superbet"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of signals"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Show the most recent signals for a platform, expired ones included."""
    from aviator_signals.pipeline import build_manager
    from aviator_signals.signals.formatters import format_json, format_table

    target = _parse_platform(platform)

    async def _run() -> None:
        manager, resources = build_manager()
        try:
            signals = await manager.get_recent_signals(target, limit)
        finally:
            await _close_all(resources)

        if output == "json":
            console.print(format_json(signals))
        else:
            format_table(signals, console)

    asyncio.run(_run())


@app.command()
def window() -> None:
    """Show which platform's analysis window is open and when it flips."""
    from aviator_signals.common.clock import utcnow
    from aviator_signals.config import get_settings
    from aviator_signals.signals.schedule import active_platform, next_window_change

    tz = get_settings().tz
    now = utcnow()
    platform = active_platform(tz, now)
    change = next_window_change(tz, now)
    remaining = int((change - now).total_seconds() // 60)

    console.print(f"[bold]Active platform:[/bold] [green]{platform.value}[/green]")
    console.print(f"  Local time: {now.astimezone(tz).strftime('%H:%M')} ({tz.key})")
    console.print(f"  Switches at {change.strftime('%H:%M')} (in {remaining} min)")


@app.command(name="import-history")
def import_history(
    path: Path = typer.Argument(help="JSON array of {multiplier, round_time, platform}", exists=True, dir_okay=False),
) -> None:
    """Import exported round history, ignoring duplicates."""
    from aviator_signals.history.importer import load_history_file
    from aviator_signals.signals.tracker import SignalTracker, StoreError

    try:
        events, skipped = load_history_file(path)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    async def _run() -> int:
        tracker = SignalTracker()
        try:
            return await tracker.import_events(events)
        finally:
            await tracker.close()

    try:
        inserted = asyncio.run(_run())
    except StoreError as exc:
        console.print(f"[red]Import failed: {exc}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"Read {len(events) + skipped} record(s): "
        f"[green]{inserted}[/green] imported, "
        f"{len(events) - inserted} duplicate(s), {skipped} invalid"
    )


@app.command(name="purge-future")
def purge_future() -> None:
    """Delete rounds stamped in the future (clock-skewed imports)."""
    from aviator_signals.common.clock import utcnow
    from aviator_signals.signals.tracker import SignalTracker, StoreError

    async def _run() -> int:
        tracker = SignalTracker()
        try:
            return await tracker.purge_future_events(utcnow())
        finally:
            await tracker.close()

    try:
        deleted = asyncio.run(_run())
    except StoreError as exc:
        console.print(f"[red]Purge failed: {exc}[/red]")
        raise typer.Exit(code=1)

    console.print(f"Removed {deleted} future-dated round(s)")


if __name__ == "__main__":
    app()
