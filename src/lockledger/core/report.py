"""Run summaries.

``summarize`` condenses one tracking run (the graph that was read, the
ledger before and after, and the batch outcome) into a ``Report``. It is
pure: nothing is printed or written here. Rendering lives in the CLI.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from lockledger.core.batch.models import BatchResult, FailedPackage
from lockledger.core.database import PackageDatabase
from lockledger.core.graph import DependencyGraph, PackageIdentity


@dataclass(frozen=True)
class Report:
    """Summary of one tracking run.

    Attributes:
        graph_size: Number of packages in the parsed graph.
        db_size_before: Ledger entries before the run.
        db_size_after: Ledger entries after the run.
        frontier_size: Packages that needed an artifact.
        succeeded: Packages packaged in this run, in frontier order.
        failed: Packages that failed, with causes, in frontier order.
        skipped: Non-registry packages dropped while parsing.
    """

    graph_size: int
    db_size_before: int
    db_size_after: int
    frontier_size: int
    succeeded: tuple[PackageIdentity, ...] = field(default_factory=tuple)
    failed: tuple[FailedPackage, ...] = field(default_factory=tuple)
    skipped: tuple[str, ...] = field(default_factory=tuple)

    @property
    def entries_added(self) -> int:
        return self.db_size_after - self.db_size_before

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "graph_size": self.graph_size,
            "frontier_size": self.frontier_size,
            "database": {
                "before": self.db_size_before,
                "after": self.db_size_after,
                "added": self.entries_added,
            },
            "succeeded": [
                {"name": i.name, "version": i.version} for i in self.succeeded
            ],
            "failed": [
                {"name": f.identity.name, "version": f.identity.version, "cause": f.cause}
                for f in self.failed
            ],
            "skipped": list(self.skipped),
        }


def summarize(
    graph: DependencyGraph,
    db_before: PackageDatabase,
    db_after: PackageDatabase,
    result: BatchResult,
    *,
    frontier: Sequence[PackageIdentity] | None = None,
) -> Report:
    """Build a ``Report`` for one run.

    The frontier size defaults to the number of identities the orchestrator
    attempted. Pass *frontier* when nothing was attempted on purpose, as in
    a plan-only run.
    """
    return Report(
        graph_size=len(graph),
        db_size_before=len(db_before),
        db_size_after=len(db_after),
        frontier_size=len(frontier) if frontier is not None else result.attempted,
        succeeded=tuple(result.succeeded),
        failed=tuple(result.failed),
        skipped=tuple(graph.skipped),
    )
