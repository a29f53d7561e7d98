"""Frontier computation: which graph nodes still need an artifact.

The frontier is every node of the dependency graph that the ledger does not
record as processed. Edge structure never changes *which* identities are in
the frontier, only the order they come in.

Ordering is a deterministic topological order of the graph restricted to the
frontier (dependencies before dependents), computed with Kahn's algorithm and
a heap so that ties break lexicographically. Nodes caught in a cycle cannot be
ordered topologically; they are appended in lexicographic order instead of
failing the run.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict

from lockledger.core.database import PackageDatabase, RecordStatus
from lockledger.core.graph import DependencyGraph, PackageIdentity

logger = logging.getLogger(__name__)

Frontier = tuple[PackageIdentity, ...]


def _is_exhausted(db: PackageDatabase, identity: PackageIdentity, max_attempts: int) -> bool:
    record = db.get(identity)
    return (
        record is not None
        and record.status is RecordStatus.FAILED
        and record.attempts >= max_attempts
    )


def frontier_set(
    graph: DependencyGraph,
    db: PackageDatabase,
    max_attempts: int | None = None,
) -> set[PackageIdentity]:
    """Return the unordered frontier.

    Args:
        graph: This run's dependency graph.
        db: The ledger snapshot.
        max_attempts: When set, failed identities that already used this
            many attempts are left out. ``None`` retries forever.
    """
    members = {i for i in graph.nodes if not db.contains(i)}
    if max_attempts is not None:
        exhausted = {i for i in members if _is_exhausted(db, i, max_attempts)}
        if exhausted:
            logger.warning(
                "Leaving out %d package(s) that failed %d time(s) or more",
                len(exhausted),
                max_attempts,
            )
        members -= exhausted
    return members


def topological_order(
    graph: DependencyGraph, members: set[PackageIdentity]
) -> Frontier:
    """Order *members* dependencies-first, lexicographic on ties.

    Only edges between members count. Members left over when no member has
    all its dependencies emitted (i.e. cycles) follow in lexicographic order.
    """
    indegree: dict[PackageIdentity, int] = {m: 0 for m in members}
    dependents: dict[PackageIdentity, list[PackageIdentity]] = defaultdict(list)
    for node in members:
        for dep in graph.dependencies(node):
            if dep in indegree:
                indegree[node] += 1
                dependents[dep].append(node)

    ready = [m for m, n in indegree.items() if n == 0]
    heapq.heapify(ready)
    order: list[PackageIdentity] = []
    while ready:
        current = heapq.heappop(ready)
        order.append(current)
        for dependent in dependents[current]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) < len(members):
        emitted = set(order)
        leftover = sorted(members - emitted)
        logger.warning(
            "Dependency cycle among %d package(s); ordering them by name",
            len(leftover),
        )
        order.extend(leftover)

    return tuple(order)


def diff(
    graph: DependencyGraph,
    db: PackageDatabase,
    max_attempts: int | None = None,
) -> Frontier:
    """Compute the ordered frontier of *graph* against *db*."""
    return topological_order(graph, frontier_set(graph, db, max_attempts))


def format_action_file(frontier: Frontier) -> str:
    """Render *frontier* as ``name version`` lines, in processing order.

    The result is readable by ``parse_package_list``, so an exported plan
    can be fed back to ``lockledger batch``.
    """
    return "".join(f"{identity.name} {identity.version}\n" for identity in frontier)
