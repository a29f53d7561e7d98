"""Resolved dependency graph data structure.

The graph is a mapping from ``PackageIdentity`` to the frozen set of
identities it depends on. Edges are references by identity only; there are
no back-pointers and nodes own nothing. A graph is built once per run by the
parser and is immutable afterwards.

Dangling edges (a dependency naming an identity that is not itself a node,
e.g. a platform-specific dependency filtered out upstream) are legal and are
simply ignored by consumers that walk the graph.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from lockledger.core.graph.identity import PackageIdentity


# ---------------------------------------------------------------------------
# PackageNode: A vertex in the graph
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageNode:
    """A package identity together with its outgoing dependency edges."""

    identity: PackageIdentity
    dependencies: frozenset[PackageIdentity] = field(default_factory=frozenset)

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> str:
        return self.identity.version


# ---------------------------------------------------------------------------
# DependencyGraph
# ---------------------------------------------------------------------------


class DependencyGraph:
    """An immutable, fully resolved dependency graph.

    Construction normalizes edges: self-edges are dropped and duplicate
    edges collapse because edges are stored as sets. Adding the same
    identity twice merges the two edge sets.

    Args:
        nodes: Package nodes to include.
        skipped: Human-readable descriptions of packages the parser chose
            not to include (git or path sources, workspace members).
    """

    def __init__(
        self,
        nodes: Iterable[PackageNode] = (),
        skipped: Iterable[str] = (),
    ) -> None:
        edges: dict[PackageIdentity, set[PackageIdentity]] = defaultdict(set)
        for node in nodes:
            deps = edges[node.identity]
            deps.update(d for d in node.dependencies if d != node.identity)
        self._edges: Mapping[PackageIdentity, frozenset[PackageIdentity]] = (
            MappingProxyType({k: frozenset(v) for k, v in edges.items()})
        )
        self._skipped: tuple[str, ...] = tuple(skipped)

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[PackageIdentity, Iterable[PackageIdentity]]
    ) -> DependencyGraph:
        """Build a graph from an ``identity -> dependencies`` mapping."""
        return cls(
            PackageNode(identity=k, dependencies=frozenset(v))
            for k, v in mapping.items()
        )

    # -- Queries ------------------------------------------------------------

    @property
    def nodes(self) -> frozenset[PackageIdentity]:
        """Return every identity that is a node of the graph."""
        return frozenset(self._edges)

    @property
    def edges(self) -> Mapping[PackageIdentity, frozenset[PackageIdentity]]:
        """Return a read-only view of the adjacency mapping."""
        return self._edges

    @property
    def skipped(self) -> tuple[str, ...]:
        """Return descriptions of packages dropped while parsing."""
        return self._skipped

    def dependencies(self, identity: PackageIdentity) -> frozenset[PackageIdentity]:
        """Return the direct dependencies of *identity* (empty if unknown)."""
        return self._edges.get(identity, frozenset())

    def dangling_edges(self) -> list[tuple[PackageIdentity, PackageIdentity]]:
        """Return ``(source, target)`` pairs whose target is not a node."""
        return sorted(
            (src, dst)
            for src, deps in self._edges.items()
            for dst in deps
            if dst not in self._edges
        )

    # -- Container protocol -------------------------------------------------

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, identity: object) -> bool:
        return identity in self._edges

    def __iter__(self) -> Iterator[PackageIdentity]:
        return iter(sorted(self._edges))

    def __repr__(self) -> str:
        return f"DependencyGraph(nodes={len(self._edges)}, skipped={len(self._skipped)})"
