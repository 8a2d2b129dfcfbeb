"""Typer-based CLI for one-off sync runs and state maintenance."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from .models import CycleResult


# Import with local function to avoid circular imports
def _load_settings(config_path: Optional[Path] = None):
    from .config import load_settings
    return load_settings(config_path)


def _build_container(settings, adapters):
    from .di import build_container
    return build_container(settings, adapters)


def _create_exchange_adapters_from_settings(settings):
    from .exchanges.init import create_exchange_adapters_from_settings
    return create_exchange_adapters_from_settings(settings)


def _open_state_store(settings):
    from .state import SyncStateStore
    return SyncStateStore(settings.sync.state_file)


app = typer.Typer(help="Exchange rebate sync service CLI")
console = Console()
logger = logging.getLogger(__name__)


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


def _format_ms(timestamp_ms: int | None) -> str:
    if timestamp_ms is None:
        return "-"
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _print_result(result: "CycleResult") -> None:
    status_style = {
        "completed": "green",
        "noop": "yellow",
        "failed": "red",
        "timeout": "red",
    }.get(result.status.value, "white")

    window = "-"
    if result.window is not None:
        window = f"{_format_ms(result.window.start_ms)} -> {_format_ms(result.window.end_ms)}"
        if result.window.clamped:
            window += " (clamped)"

    lines = [
        f"Exchange: [cyan]{result.exchange}[/cyan]",
        f"Status: [{status_style}]{result.status.value.upper()}[/{status_style}]",
        f"Window: {window}",
        f"Fetched: {result.fetched}",
        f"Submitted: {result.submitted}",
        f"Duplicates: {result.duplicates}",
        f"Skipped: {result.skipped}",
        f"Failed: {result.failed}",
    ]
    if result.error:
        lines.append(f"Error: [red]{escape(result.error)}[/red]")
    console.print(Panel.fit("\n".join(lines), title="Sync Cycle"))


@app.command()
def sync_once(
    exchange: str = typer.Option(..., help="Exchange identifier (bitget, gate, xt)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log records instead of submitting; keep state untouched"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Run a single sync cycle for one exchange."""
    try:
        result = asyncio.run(_sync_once_async(exchange.lower(), dry_run, config))
    except Exception as e:
        logger.error("Sync cycle failed: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if result is None:
        raise typer.Exit(1)

    _print_result(result)
    if not result.ok:
        raise typer.Exit(1)


async def _sync_once_async(exchange: str, dry_run: bool, config: Optional[Path]) -> "CycleResult | None":
    settings = _load_settings(config)
    if dry_run:
        settings.sync.test_mode = True

    adapters = _create_exchange_adapters_from_settings(settings)
    if exchange not in adapters:
        console.print(f"[red]Error:[/red] Exchange '{exchange}' not configured")
        for adapter in adapters.values():
            await adapter.close()
        return None

    container = _build_container(settings, {exchange: adapters[exchange]})
    for name, adapter in adapters.items():
        if name != exchange:
            await adapter.close()

    try:
        return await asyncio.wait_for(
            container.engine.run_cycle(container.adapters[exchange]),
            timeout=settings.sync.cycle_timeout_seconds,
        )
    finally:
        await container.aclose()


@app.command()
def state_show(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Show the stored sync watermark of every exchange."""
    try:
        settings = _load_settings(config)
        store = _open_state_store(settings)
        watermarks = store.snapshot()
    except Exception as e:
        logger.error("Failed to read state: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if not watermarks:
        console.print(f"[yellow]No watermarks stored in {store.path}[/yellow]")
        return

    table = Table(title=f"Sync State ({store.path})")
    table.add_column("Exchange", style="cyan")
    table.add_column("Last Sync (ms)", style="magenta")
    table.add_column("Last Sync", style="green")

    for exchange, timestamp in watermarks.items():
        table.add_row(exchange, str(timestamp), _format_ms(timestamp))

    console.print(table)


@app.command()
def state_reset(
    exchange: str = typer.Argument(..., help="Exchange whose watermark is removed"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Remove one exchange's watermark; its next cycle starts from 10 minutes ago."""
    try:
        settings = _load_settings(config)
        store = _open_state_store(settings)
        removed = store.reset(exchange.lower())
    except Exception as e:
        logger.error("Failed to reset state: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if removed:
        console.print(f"[green]✓ Watermark for {exchange} removed[/green]")
    else:
        console.print(f"[yellow]No watermark stored for {exchange}[/yellow]")


@app.command()
def config_show(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Print the effective configuration with secrets masked."""
    try:
        settings = _load_settings(config)
    except Exception as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print_json(json.dumps(settings.redacted()))
