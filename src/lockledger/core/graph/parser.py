"""Turning dependency descriptions into a ``DependencyGraph``.

Two syntactic shapes are accepted, detected by content rather than file name:

- **Lock files** (``Cargo.lock``): every package at its exact version with
  exact dependency edges. Parsed directly.
- **Manifests** (``Cargo.toml``): direct dependencies with version ranges.
  The parser never solves constraints; a manifest is handed to an injected
  ``ManifestResolver`` (the ecosystem's own resolver run as a black box)
  and the lock text it returns is parsed instead.

A third, plain format (``name version`` per line) is read by
``parse_package_list`` for explicit batch lists; it carries no edges.

Only packages from a package registry become graph nodes. Workspace members
(no ``source``) are dropped silently; git and path packages are dropped and
recorded in ``DependencyGraph.skipped`` so the run report can mention them.
"""

from __future__ import annotations

import enum
import logging
import tomllib
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from lockledger.core.graph.graph import DependencyGraph, PackageNode
from lockledger.core.graph.identity import PackageIdentity, validate_version, version_key
from lockledger.exceptions import ParseError

if TYPE_CHECKING:
    from lockledger.collaborators.base import ManifestResolver

logger = logging.getLogger(__name__)

_REGISTRY_SOURCE_PREFIX = "registry+"

_MANIFEST_SECTIONS = (
    "[package]",
    "[dependencies]",
    "[dev-dependencies]",
    "[build-dependencies]",
    "[workspace]",
)


class InputKind(enum.Enum):
    """Syntactic shape of a dependency description."""

    MANIFEST = "manifest"
    LOCKFILE = "lockfile"


def classify(text: str) -> InputKind:
    """Decide whether *text* is a lock file or a manifest.

    Lock files are recognized by their ``[[package]]`` array (or, for
    fragments, by ``name``/``version``/``checksum`` keys together).
    Manifests are recognized by their section headers.

    Raises:
        ParseError: If the text looks like neither.
    """
    if "[[package]]" in text or (
        "name =" in text and "version =" in text and "checksum =" in text
    ):
        return InputKind.LOCKFILE
    if any(section in text for section in _MANIFEST_SECTIONS):
        return InputKind.MANIFEST
    raise ParseError(
        "Input format not recognized. Expected a lock file with [[package]] "
        "entries, or a manifest with [package] or [dependencies] sections."
    )


class GraphParser:
    """Parse lock files (and, through a resolver, manifests) into graphs.

    Args:
        resolver: Collaborator that turns manifest text into lock text.
            Without one, manifest input is rejected.
    """

    def __init__(self, resolver: ManifestResolver | None = None) -> None:
        self._resolver = resolver

    def parse(self, text: str) -> DependencyGraph:
        """Parse a lock file or a manifest into a ``DependencyGraph``.

        Raises:
            ParseError: Malformed input or malformed versions.
            ResolutionError: The resolver failed on manifest input.
        """
        match classify(text):
            case InputKind.LOCKFILE:
                logger.debug("Input detected as lock file")
                return parse_lockfile(text)
            case InputKind.MANIFEST:
                logger.debug("Input detected as manifest")
                if self._resolver is None:
                    raise ParseError(
                        "Manifest input must be resolved to a lock file first, "
                        "but no resolver is configured"
                    )
                return parse_lockfile(self._resolver.resolve(text))


# ---------------------------------------------------------------------------
# Lock file parsing
# ---------------------------------------------------------------------------


def _require_str(entry: dict[str, Any], key: str, index: int) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise ParseError(f"Package entry #{index + 1} is missing a {key!r} string")
    return value


def parse_lockfile(text: str) -> DependencyGraph:
    """Parse Cargo lock file text into a ``DependencyGraph``.

    Dependency entries take the forms ``"name"``, ``"name version"`` and
    ``"name version (source)"``. A bare name refers to the only registry
    version of that package in the lock file (or the highest, if a
    malformed lock lists several).

    Raises:
        ParseError: On invalid TOML, missing fields, or invalid versions.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ParseError(f"Lock file is not valid TOML: {exc}") from exc

    packages = data.get("package")
    if not isinstance(packages, list):
        raise ParseError("Lock file is missing the [[package]] array")

    # First pass: identities, split into registry and non-registry packages.
    registry: list[tuple[PackageIdentity, dict[str, Any]]] = []
    excluded: set[PackageIdentity] = set()
    name_to_versions: dict[str, list[str]] = defaultdict(list)
    skipped: list[str] = []

    for index, entry in enumerate(packages):
        if not isinstance(entry, dict):
            raise ParseError(f"Package entry #{index + 1} is not a table")
        name = _require_str(entry, "name", index)
        version = validate_version(_require_str(entry, "version", index), package=name)
        identity = PackageIdentity(name=name, version=version)
        source = entry.get("source")

        if source is None:
            logger.debug("Skipping workspace member %s", identity)
            excluded.add(identity)
            continue
        if not isinstance(source, str) or not source.startswith(_REGISTRY_SOURCE_PREFIX):
            skipped.append(f"{name} {version} (source: {source})")
            excluded.add(identity)
            continue

        registry.append((identity, entry))
        name_to_versions[name].append(version)

    # Second pass: edges. A [patch] can put a git or path package next to a
    # registry package with the same name and version; the registry node wins.
    registry_ids = {identity for identity, _ in registry}
    nodes: list[PackageNode] = []
    for identity, entry in registry:
        raw_deps = entry.get("dependencies", [])
        if not isinstance(raw_deps, list):
            raise ParseError(f"Dependencies of {identity} must be an array")
        deps: set[PackageIdentity] = set()
        for raw in raw_deps:
            target = _resolve_dependency(raw, identity, name_to_versions)
            if target is None or (target in excluded and target not in registry_ids):
                continue
            deps.add(target)
        nodes.append(PackageNode(identity=identity, dependencies=frozenset(deps)))

    if skipped:
        logger.warning("Skipped %d non-registry package(s)", len(skipped))
        for item in skipped:
            logger.info("  - %s", item)

    graph = DependencyGraph(nodes, skipped=skipped)
    for src, dst in graph.dangling_edges():
        logger.debug("Dependency %s of %s is not a node of the graph", dst, src)
    return graph


def _resolve_dependency(
    raw: object,
    owner: PackageIdentity,
    name_to_versions: dict[str, list[str]],
) -> PackageIdentity | None:
    """Turn one lock-file dependency entry into an identity, if possible."""
    if not isinstance(raw, str) or not raw.strip():
        raise ParseError(f"Invalid dependency entry {raw!r} in {owner}")

    parts = raw.split()
    dep_name = parts[0]
    if len(parts) > 2:
        source = " ".join(parts[2:]).strip("()")
        if not source.startswith(_REGISTRY_SOURCE_PREFIX):
            logger.debug("Dropping edge %s -> %s (source: %s)", owner, dep_name, source)
            return None
    if len(parts) > 1:
        version = validate_version(parts[1], package=dep_name)
        return PackageIdentity(name=dep_name, version=version)

    candidates = name_to_versions.get(dep_name)
    if not candidates:
        logger.debug("Dropping edge %s -> %s (not a registry package)", owner, dep_name)
        return None
    return PackageIdentity(name=dep_name, version=max(candidates, key=version_key))


# ---------------------------------------------------------------------------
# Plain package lists
# ---------------------------------------------------------------------------


def parse_package_list(text: str) -> DependencyGraph:
    """Parse a ``name version`` list (one package per line) into a graph.

    Blank lines and ``#`` comments are ignored. Lines with fewer than two
    fields are logged and skipped; extra fields are ignored.

    Raises:
        ParseError: If a version is not a valid semantic version.
    """
    nodes: list[PackageNode] = []
    for line_num, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split()
        if len(parts) < 2:
            logger.warning(
                "Invalid line %d (expected 'name version'): %s", line_num, stripped
            )
            continue
        name = parts[0]
        version = validate_version(parts[1], package=name)
        nodes.append(PackageNode(identity=PackageIdentity(name=name, version=version)))
    return DependencyGraph(nodes)
