"""``lockledger track`` — Track a crate's dependency graph and package what is new.

Three input modes:

1. ``lockledger track CRATE [VERSION]``: the crate is resolved on crates.io
   (newest stable when VERSION is omitted) and cargo resolves its full
   dependency closure.
2. ``lockledger track -f Cargo.toml``: cargo resolves the manifest.
3. ``lockledger track -f Cargo.lock``: the lock file is used as is.

Modes 2 and 3 are told apart by file content, not by file name.

Exit Codes:
    0 — Every crate needing processing was packaged (or nothing to do).
    1 — At least one crate failed to package.
    2 — Aborted: bad input, resolver failure, unreadable ledger or config.
    130 — Interrupted; crates packaged before the interrupt were saved.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from lockledger.cli.output import console
from lockledger.cli.pipeline import guarded, processing_options, resolve_settings, run_graph
from lockledger.collaborators import CargoResolver, synthetic_manifest
from lockledger.config import Settings
from lockledger.core.graph import DependencyGraph, GraphParser, InputKind, classify, parse_lockfile
from lockledger.exceptions import ParseError
from lockledger.registry import CratesIoFetcher

logger = logging.getLogger(__name__)


def _graph_from_crate(
    name: str, version: str | None, settings: Settings, *, verbose: bool
) -> DependencyGraph:
    fetcher = CratesIoFetcher(settings.registry_url, timeout=settings.timeout)
    identity, meta = fetcher.fetch(name, version)
    if verbose:
        console.print(f"[green]✓[/green] Resolved to version: {identity.version}", highlight=False)
    if meta.yanked and verbose:
        console.print(f"[yellow]! {identity} is yanked on crates.io[/yellow]", highlight=False)
    lock_text = CargoResolver(settings.cargo).resolve(synthetic_manifest(identity))
    return parse_lockfile(lock_text)


def _graph_from_file(path: Path, settings: Settings, *, verbose: bool) -> DependencyGraph:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Failed to read {path}: {exc}") from exc

    kind = classify(text)
    if verbose:
        detected = "Cargo.lock" if kind is InputKind.LOCKFILE else "Cargo.toml"
        console.print(f"[green]✓[/green] Detected {detected} format (by content)")
    return GraphParser(resolver=CargoResolver(settings.cargo)).parse(text)


@click.command("track")
@click.argument("crate", required=False)
@click.argument("version", required=False)
@click.option(
    "--from-file", "-f", "from_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Cargo.toml or Cargo.lock to track (detected by content).",
)
@processing_options
@click.pass_context
@guarded
def track_command(
    ctx: click.Context,
    crate: str | None,
    version: str | None,
    from_file: Path | None,
    action_file: Path | None,
    plan_only: bool,
    output_format: str,
    **overrides: object,
) -> int:
    """Track a dependency graph and package the crates not yet in the ledger.

    Give either CRATE (with an optional VERSION) or --from-file.

    Examples:

        lockledger track serde 1.0.200

        lockledger track -f Cargo.lock --plan --action-file todo.txt

        lockledger track -f Cargo.toml --generator-cmd 'pkg {name} {version} {output}'
    """
    if (crate is None) == (from_file is None):
        raise click.UsageError("Give either CRATE [VERSION] or --from-file, not both or neither.")
    if version is not None and crate is None:
        raise click.UsageError("VERSION requires CRATE.")

    settings = resolve_settings(ctx, **overrides)
    verbose = output_format == "text"
    if from_file is not None:
        graph = _graph_from_file(from_file, settings, verbose=verbose)
        label = from_file.resolve().parent.name or str(from_file)
    else:
        graph = _graph_from_crate(crate, version, settings, verbose=verbose)
        label = f"{crate} {version}" if version else crate

    return run_graph(
        graph,
        settings,
        label=label,
        output_format=output_format,
        action_file=action_file,
        plan_only=plan_only,
    )
