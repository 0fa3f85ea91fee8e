"""CLI client for the chat archiver.

Provides commands to run an incremental archive sync, rebuild the indexes
from disk and check Slack access without writing anything.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

import typer
from prometheus_client import REGISTRY, write_to_textfile
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from chat_archive.models.config import ArchiveConfig, ConfigLoader
from chat_archive.sync.orchestrator import ArchiveError, ArchiveSync

# Configure logging to stay quiet by default, will be adjusted by verbose flag
logging.basicConfig(
    level=logging.WARNING, format="%(message)s", datefmt="[%X]", handlers=[RichHandler(rich_tracebacks=True)]
)

app = typer.Typer(help="Chat Archive - incremental Slack channel archive as static pages")
console = Console()

LOG_LEVEL_ENV = "LOG_LEVEL"


class State:
    """Application state container."""

    def __init__(self) -> None:
        self.config_path: Optional[str] = None
        self.verbose: bool = False


state = State()


class OutputFormat(str, Enum):
    """Supported page formats."""

    markdown = "markdown"
    html = "html"


def _default_level() -> int:
    """Level named by the LOG_LEVEL environment variable, INFO when unset or unknown."""
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


@app.callback()  # type: ignore[misc]
def main(
    config: Optional[str] = typer.Option(None, "--config", help="Path to an optional YAML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging (DEBUG level)"),
) -> None:
    """Chat Archive - incremental Slack channel archive as static pages."""
    state.config_path = config
    state.verbose = verbose

    level = logging.DEBUG if verbose else _default_level()
    logging.getLogger().setLevel(level)
    logging.getLogger("chat_archive").setLevel(level)
    # The SDK logs full request bodies at DEBUG
    logging.getLogger("slack_sdk").setLevel(logging.WARNING)


def _load_config(overrides: Optional[Dict[str, Any]] = None) -> ArchiveConfig:
    try:
        return ConfigLoader.load(state.config_path, overrides=overrides)
    except (ValidationError, ValueError, OSError) as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _write_metrics(path: Optional[str]) -> None:
    if not path:
        return
    try:
        write_to_textfile(path, REGISTRY)
    except OSError as e:
        console.print(f"[yellow]Could not write metrics to {path}: {escape(str(e))}[/yellow]")


@app.command()  # type: ignore[misc]
def sync(
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Root of the generated document tree"),
    state_dir: Optional[str] = typer.Option(None, "--state-dir", help="Directory holding the cursor file"),
    lookback_days: Optional[int] = typer.Option(None, "--lookback-days", help="Days of history re-fetched per run"),
    output_format: Optional[OutputFormat] = typer.Option(None, "--format", help="Page format"),
    metrics_file: Optional[str] = typer.Option(
        None, "--metrics-file", help="Write Prometheus metrics to this file after the run"
    ),
) -> None:
    """Fetch new messages and update the daily pages and indexes."""
    config = _load_config(
        {
            "output_dir": output_dir,
            "state_dir": state_dir,
            "lookback_days": lookback_days,
            "output_format": output_format.value if output_format else None,
        }
    )
    try:
        result = ArchiveSync(config).run()
    except ArchiveError as e:
        console.print(f"[red]Archive run failed: {escape(str(e))}[/red]")
        _write_metrics(metrics_file)
        raise typer.Exit(code=1)

    table = Table(title="Archive Run")
    table.add_column("Channel", style="cyan")
    table.add_column("Status", style="magenta")
    for name in result.synced_channels:
        table.add_row(f"#{name}", "synced")
    for name in result.failed_channels:
        table.add_row(f"#{name}", "[red]failed[/red]")
    for name in result.missing_channels:
        table.add_row(name, "[yellow]not found[/yellow]")
    console.print(table)

    if result.changed:
        console.print(f"[green]Archive updated: {result.pages_written} page(s) written.[/green]")
    else:
        console.print("[yellow]No changes detected.[/yellow]")
    _write_metrics(metrics_file)


@app.command()  # type: ignore[misc]
def indexes(
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Root of the generated document tree"),
    output_format: Optional[OutputFormat] = typer.Option(None, "--format", help="Page format"),
) -> None:
    """Rebuild channel and global indexes from the pages on disk (no Slack access)."""
    config = _load_config(
        {"output_dir": output_dir, "output_format": output_format.value if output_format else None}
    )
    written = ArchiveSync(config).render_indexes()
    console.print(f"[green]Indexes rebuilt: {written} file(s) changed.[/green]")


@app.command()  # type: ignore[misc]
def check() -> None:
    """Validate configuration, the Slack token and the channel allow-list."""
    config = _load_config()
    try:
        channels, missing = ArchiveSync(config).preflight()
    except ArchiveError as e:
        console.print(f"[red]Check failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Allow-listed Channels")
    table.add_column("Channel", style="cyan")
    table.add_column("ID", style="magenta")
    for channel in channels:
        table.add_row(f"#{channel.name}", channel.id)
    for name in missing:
        table.add_row(name, "[yellow]not found[/yellow]")
    console.print(table)
    console.print(f"[green]Slack access OK: {len(channels)} channel(s) resolved.[/green]")


if __name__ == "__main__":
    app()
