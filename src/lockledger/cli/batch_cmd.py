"""``lockledger batch <file>`` — Package every crate listed in a plain list file.

The list holds one ``name version`` pair per line; blank lines and ``#``
comments are ignored. An action file written by ``lockledger track
--action-file`` is a valid list, so a plan can be reviewed and then run.

Crates already processed according to the ledger are skipped. The list
carries no dependency edges, so crates are processed in name order.

Exit Codes:
    0 — Every listed crate needing processing was packaged.
    1 — At least one crate failed to package.
    2 — Aborted: unreadable list, ledger or config.
    130 — Interrupted; crates packaged before the interrupt were saved.
"""

from __future__ import annotations

from pathlib import Path

import click

from lockledger.cli.pipeline import guarded, processing_options, resolve_settings, run_graph
from lockledger.core.graph import parse_package_list
from lockledger.exceptions import ParseError


@click.command("batch")
@click.argument("list_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@processing_options
@click.pass_context
@guarded
def batch_command(
    ctx: click.Context,
    list_file: Path,
    action_file: Path | None,
    plan_only: bool,
    output_format: str,
    **overrides: object,
) -> int:
    """Package the crates listed in LIST_FILE that are not yet in the ledger.

    Examples:

        lockledger batch todo.txt --generator-cmd 'pkg {name} {version} {output}'

        lockledger batch todo.txt -j 4 --format json
    """
    settings = resolve_settings(ctx, **overrides)
    try:
        text = list_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Failed to read {list_file}: {exc}") from exc

    graph = parse_package_list(text)
    return run_graph(
        graph,
        settings,
        label=list_file.name,
        output_format=output_format,
        action_file=action_file,
        plan_only=plan_only,
    )
