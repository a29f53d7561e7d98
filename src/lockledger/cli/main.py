"""lockledger CLI: incremental dependency tracking for distribution packaging.

Entry point for the ``lockledger`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    track  Track a crate, a Cargo.toml or a Cargo.lock and package what is new.
    batch  Package every crate listed in a ``name version`` file.
    show   Print the ledger of processed and failed crates.

Usage::

    lockledger track serde                      # newest serde and its deps
    lockledger track serde 1.0.200 -o ./out
    lockledger track -f Cargo.lock --plan --action-file todo.txt
    lockledger track -f Cargo.toml --generator-cmd 'pkg {name} {version} {output}'
    lockledger batch todo.txt -j 4
    lockledger show --failed
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.logging import RichHandler

from lockledger import __version__
from lockledger.cli.batch_cmd import batch_command
from lockledger.cli.output import err_console
from lockledger.cli.show_cmd import show_command
from lockledger.cli.track import track_command


def _configure_logging(verbose: int, quiet: bool) -> None:
    """Route log records to stderr through Rich."""
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    handler = RichHandler(console=err_console, show_time=False, show_path=False)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


@click.group()
@click.version_option(version=__version__, prog_name="lockledger")
@click.option("--verbose", "-v", count=True, help="Log progress (-v) or debug detail (-vv).")
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only log errors.")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/lockledger/config.yaml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, quiet: bool, config_path: Path | None) -> None:
    """lockledger: never package the same crate twice.

    Parses a resolved Cargo dependency graph, compares it with a persistent
    ledger of already packaged crates, and runs the packaging command only
    for what is new. Failures are isolated per crate and retried next run.
    """
    _configure_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# Register all subcommands
cli.add_command(track_command)
cli.add_command(batch_command)
cli.add_command(show_command)
