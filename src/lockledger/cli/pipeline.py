"""Shared plumbing for the commands that process a dependency graph.

``track`` and ``batch`` only differ in how they obtain the graph. From
there on both run the same pipeline::

    load ledger -> diff -> (action file) -> orchestrate -> save -> hook -> report

Exit Codes:
    0   All packages succeeded, nothing to do, or plan-only run.
    1   At least one package failed.
    2   Aborted before processing (parse, resolution, storage, config error).
    130 Interrupted; work completed by the batch so far was saved.
"""

from __future__ import annotations

import functools
import logging
import sys
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import click

from lockledger.cli.output import (
    console,
    err_console,
    print_error,
    print_frontier,
    print_json,
    print_report,
)
from lockledger.collaborators import CommandGenerator
from lockledger.config import Settings, load_settings
from lockledger.core.batch import BatchOrchestrator, BatchResult
from lockledger.core.database import GitCommitHook, PackageDatabase, SaveHook
from lockledger.core.diff import Frontier, diff, format_action_file
from lockledger.core.graph import DependencyGraph
from lockledger.core.report import Report, summarize
from lockledger.exceptions import LockLedgerError, StorageError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_ABORTED = 2
EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

_PROCESSING_OPTIONS = [
    click.option(
        "--output", "-o", "output_dir",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Artifact directory (default: ./track_<timestamp>).",
    ),
    click.option(
        "--database", "database",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Ledger file (default: ~/.config/lockledger/package_db.json).",
    ),
    click.option(
        "--action-file", "action_file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Write the crates needing processing to this file.",
    ),
    click.option(
        "--generator-cmd", "generator_command",
        default=None,
        help="Command template run per crate, e.g. 'pkg {name} {version} {output}'.",
    ),
    click.option(
        "--plan", "plan_only",
        is_flag=True,
        default=False,
        help="Only compute and print the frontier; do not generate anything.",
    ),
    click.option("--jobs", "-j", type=click.IntRange(min=1), default=None,
                 help="Concurrent generator runs (default: 1)."),
    click.option("--checkpoint-every", type=click.IntRange(min=1), default=None,
                 help="Save the ledger after this many successes (default: 1)."),
    click.option("--max-attempts", type=click.IntRange(min=1), default=None,
                 help="Stop retrying a crate after this many failures."),
    click.option("--git-commit/--no-git-commit", default=None,
                 help="Commit the ledger into git after saving."),
    click.option(
        "--format", "output_format",
        type=click.Choice(["text", "json"]),
        default="text",
        help="Output format (default: text).",
    ),
]


def processing_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by ``track`` and ``batch``."""
    for option in reversed(_PROCESSING_OPTIONS):
        func = option(func)
    return func


def resolve_settings(ctx: click.Context, **overrides: Any) -> Settings:
    """Load settings from the group's ``--config`` and apply CLI overrides.

    Raises:
        ConfigError: If the config file is invalid.
    """
    config_path = (ctx.obj or {}).get("config_path")
    return load_settings(config_path).override(**overrides)


def guarded(func: Callable[..., int]) -> Callable[..., NoReturn]:
    """Run a command body and translate its outcome into an exit status."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> NoReturn:
        try:
            code = func(*args, **kwargs)
        except LockLedgerError as exc:
            logger.debug("Aborting", exc_info=True)
            print_error(str(exc))
            sys.exit(EXIT_ABORTED)
        except KeyboardInterrupt:
            print_error("Interrupted.")
            sys.exit(EXIT_INTERRUPTED)
        sys.exit(code)

    return wrapper


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _write_action_file(frontier: Frontier, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(format_action_file(frontier), encoding="utf-8")
    except OSError as exc:
        raise StorageError(f"Failed to write action file {path}: {exc}") from exc
    logger.info("Wrote %d crate(s) to action file %s", len(frontier), path)


def _default_output_dir() -> Path:
    return Path(f"track_{datetime.now().strftime('%Y%m%d_%H%M%S')}")


def _save(db: PackageDatabase, path: Path, hook: SaveHook | None, message: str) -> None:
    db.save(path)
    if hook is not None:
        hook.after_save(path, message)


def _emit(
    report: Report,
    frontier: Frontier,
    settings: Settings,
    *,
    label: str,
    output_dir: Path | None,
    output_format: str,
) -> None:
    if output_format == "json":
        print_json({
            "source": label,
            "plan_only": output_dir is None,
            "database": str(settings.database),
            "output_dir": str(output_dir) if output_dir is not None else None,
            "frontier": [{"name": i.name, "version": i.version} for i in frontier],
            "report": report.to_dict(),
        })
    else:
        print_report(report, database=settings.database, output_dir=output_dir)


def run_graph(
    graph: DependencyGraph,
    settings: Settings,
    *,
    label: str,
    output_format: str = "text",
    action_file: Path | None = None,
    plan_only: bool = False,
) -> int:
    """Process *graph* against the ledger and return the exit status.

    Without a generator command (or with *plan_only*) the frontier is only
    reported: the ledger is neither mutated nor saved.

    Raises:
        StorageError: The ledger or action file could not be read or written.
        ConfigError: The generator command template is invalid.
        KeyboardInterrupt: After completed work was checkpointed.
    """
    text = output_format == "text"
    db = PackageDatabase.load(settings.database)
    before = db.copy()
    frontier = diff(graph, db, settings.max_attempts)

    if text:
        console.print(f"[green]✓[/green] Parsed {len(graph)} packages from dependency graph")
        console.print(f"[green]✓[/green] Database has {len(db)} entries")
        print_frontier(frontier, db)
    if action_file is not None:
        _write_action_file(frontier, action_file)

    if not frontier or plan_only or settings.generator_command is None:
        if frontier and settings.generator_command is None and not plan_only and text:
            console.print("[yellow]No generator command configured; nothing was packaged.[/yellow]")
        report = summarize(graph, before, db, BatchResult(), frontier=frontier)
        _emit(report, frontier, settings, label=label, output_dir=None, output_format=output_format)
        return EXIT_OK

    output_dir = settings.output_dir or _default_output_dir()
    generator = CommandGenerator(settings.generator_command, output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(f"Failed to create output directory {output_dir}: {exc}") from exc

    hook: SaveHook | None = GitCommitHook() if settings.git_commit else None
    orchestrator = BatchOrchestrator(
        generator,
        db,
        checkpoint=lambda current: current.save(settings.database),
        checkpoint_every=settings.checkpoint_every,
        jobs=settings.jobs,
    )
    if text:
        console.print(f"\nStarting batch package into {output_dir}\n", highlight=False)

    try:
        result = orchestrator.run(frontier)
    except KeyboardInterrupt:
        saved = len(db.processed()) - len(before.processed())
        err_console.print(
            f"[yellow]Saved {saved} completed package(s) to the database.[/yellow]",
            highlight=False,
        )
        if hook is not None and saved > 0:
            hook.after_save(settings.database, f"add crates for {label} (interrupted)")
        raise

    if db.records() != before.records():
        _save(db, settings.database, hook, f"add crates for {label}")
        if text:
            console.print(f"\n[green]✓[/green] Database saved to {settings.database}", highlight=False)

    report = summarize(graph, before, db, result)
    _emit(report, frontier, settings, label=label, output_dir=output_dir, output_format=output_format)
    return EXIT_OK if result.all_succeeded else EXIT_PARTIAL
