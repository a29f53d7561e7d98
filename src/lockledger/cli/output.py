"""Rich output formatting helpers for the lockledger CLI.

Human-readable output goes to stdout through ``console``; warnings and
errors go to stderr through ``err_console`` so that ``--format json``
output stays machine-readable.

Status Color Mapping:
    processed = green, failed = bold red
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lockledger.core.database import PackageDatabase, RecordStatus
from lockledger.core.graph import PackageIdentity
from lockledger.core.report import Report

_STATUS_STYLES: dict[RecordStatus, str] = {
    RecordStatus.PROCESSED: "green",
    RecordStatus.FAILED: "bold red",
}

console = Console()
err_console = Console(stderr=True)


def status_style(status: RecordStatus) -> str:
    """Return the Rich style string for a ledger status."""
    return _STATUS_STYLES.get(status, "white")


def print_error(message: str) -> None:
    """Print an error line to stderr."""
    err_console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)


def print_frontier(frontier: tuple[PackageIdentity, ...], db: PackageDatabase) -> None:
    """Print the packages that will be processed, in processing order.

    Packages that failed before are flagged with their attempt count.
    """
    if not frontier:
        console.print("[green]No new crates need to be processed.[/green]")
        console.print("[dim]All dependencies are already in the database.[/dim]")
        return

    table = Table(title="Crates To Process", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Crate", style="bold")
    table.add_column("Version")
    table.add_column("Previous Attempts", justify="right")
    for idx, identity in enumerate(frontier, start=1):
        record = db.get(identity)
        attempts = Text(str(record.attempts), style="red") if record else Text("-", style="dim")
        table.add_row(str(idx), identity.name, identity.version, attempts)
    console.print(table)


def print_report(report: Report, *, database: Path, output_dir: Path | None) -> None:
    """Print the end-of-run summary.

    Args:
        report: Summary produced by ``summarize``.
        database: Ledger location, for the footer.
        output_dir: Artifact directory, or None for a plan-only run.
    """
    console.print(Panel("[bold]Tracking Summary[/bold]", title="lockledger"))
    console.print(f"  Packages in dependency graph: [bold]{report.graph_size}[/bold]")
    console.print(f"  Database entries before:      {report.db_size_before}")
    console.print(f"  Database entries after:       {report.db_size_after}")
    console.print(f"  New entries added:            {report.entries_added}")
    console.print(f"  Crates needing processing:    {report.frontier_size}")
    if output_dir is not None:
        console.print(f"  Successfully packaged:        [green]{report.success_count}[/green]")
        console.print(f"  Failed:                       [red]{report.failure_count}[/red]")

    if report.failed:
        table = Table(title="Failed Packages", show_header=True, header_style="bold")
        table.add_column("Crate", style="bold")
        table.add_column("Version")
        table.add_column("Cause", style="red")
        for failure in report.failed:
            table.add_row(failure.identity.name, failure.identity.version, failure.cause)
        console.print(table)

    if report.skipped:
        console.print(f"\n[dim]Skipped {len(report.skipped)} non-registry package(s):[/dim]")
        for item in report.skipped:
            console.print(f"  [dim]- {item}[/dim]", highlight=False)

    console.print(f"\nDatabase: {database}", highlight=False)
    if output_dir is not None:
        console.print(f"Output directory: {output_dir}", highlight=False)


def print_database(db: PackageDatabase, path: Path, *, failed_only: bool = False) -> None:
    """Print ledger totals and a table of its entries."""
    processed = len(db.processed())
    failed = len(db.failed())
    parts = [f"[bold]{len(db)}[/bold] entries"]
    parts.append(f"[green]{processed} processed[/green]")
    if failed:
        parts.append(f"[red]{failed} failed[/red]")
    console.print(f"Database: {path}", highlight=False)
    console.print(" | ".join(parts))

    records = db.records()
    identities = db.failed() if failed_only else sorted(records)
    if not identities:
        console.print("[dim]No entries to show.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Crate", style="bold")
    table.add_column("Version")
    table.add_column("Status", justify="center")
    table.add_column("Attempts", justify="right")
    table.add_column("Updated", style="dim")
    table.add_column("Last Error", style="red")
    for identity in identities:
        record = records[identity]
        table.add_row(
            identity.name,
            identity.version,
            Text(record.status.value, style=status_style(record.status)),
            str(record.attempts),
            record.updated_at.strftime("%Y-%m-%d %H:%M"),
            record.last_error or "",
        )
    console.print(table)


def print_json(data: Any) -> None:
    """Print data as indented JSON to stdout.

    Args:
        data: Any JSON-serializable data structure.
    """
    click.echo(json.dumps(data, indent=2, default=str))
