"""``lockledger show`` — Print the ledger of processed and failed crates.

Exit Codes:
    0 — Ledger printed (an absent ledger prints as empty).
    2 — The ledger or config could not be read.
"""

from __future__ import annotations

from pathlib import Path

import click

from lockledger.cli.output import print_database, print_json
from lockledger.cli.pipeline import EXIT_OK, guarded, resolve_settings
from lockledger.core.database import PackageDatabase


@click.command("show")
@click.option(
    "--database", "database",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Ledger file (default: ~/.config/lockledger/package_db.json).",
)
@click.option("--failed", "failed_only", is_flag=True, default=False,
              help="Only list crates whose last attempt failed.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.pass_context
@guarded
def show_command(
    ctx: click.Context,
    database: Path | None,
    failed_only: bool,
    output_format: str,
) -> int:
    """Show the crates recorded in the ledger.

    Examples:

        lockledger show

        lockledger show --failed --format json
    """
    settings = resolve_settings(ctx, database=database)
    db = PackageDatabase.load(settings.database)

    if output_format == "json":
        if failed_only:
            records = db.records()
            db = PackageDatabase({i: records[i] for i in db.failed()})
        print_json(db.to_dict())
    else:
        print_database(db, settings.database, failed_only=failed_only)
    return EXIT_OK
