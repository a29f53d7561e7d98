"""Resolved dependency graphs and the parsers that build them.

All public names are re-exported here so callers can write
``from lockledger.core.graph import DependencyGraph``.
"""

from lockledger.core.graph.graph import DependencyGraph, PackageNode
from lockledger.core.graph.identity import (
    PackageIdentity,
    compat_version,
    validate_version,
    version_key,
)
from lockledger.core.graph.parser import (
    GraphParser,
    InputKind,
    classify,
    parse_lockfile,
    parse_package_list,
)

__all__ = [
    "DependencyGraph",
    "GraphParser",
    "InputKind",
    "PackageIdentity",
    "PackageNode",
    "classify",
    "compat_version",
    "parse_lockfile",
    "parse_package_list",
    "validate_version",
    "version_key",
]
