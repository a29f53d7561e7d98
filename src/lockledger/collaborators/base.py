"""Contracts for the collaborators the tracking engine calls out to.

The engine only needs package identities and dependency edges. Everything
that touches the network, unpacks archives or renders packaging files lives
behind one of these protocols, so the orchestrator can be driven by real
implementations or by plain test doubles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from lockledger.core.graph.identity import PackageIdentity


@dataclass(frozen=True)
class PackageMetadata:
    """Registry metadata for one package version.

    Attributes:
        license: SPDX license expression, if the registry reports one.
        description: Short description.
        homepage: Project homepage URL.
        repository: Source repository URL.
        yanked: Whether the version was yanked from the registry.
    """

    license: str | None = None
    description: str = ""
    homepage: str | None = None
    repository: str | None = None
    yanked: bool = False


@dataclass(frozen=True)
class ArtifactHandle:
    """Where a generated artifact ended up.

    Attributes:
        identity: The package the artifact was produced for.
        path: Directory or file holding the artifact.
        files: Files produced, relative to ``path``, when known.
    """

    identity: PackageIdentity
    path: Path
    files: tuple[str, ...] = field(default_factory=tuple)


@runtime_checkable
class MetadataFetcher(Protocol):
    """Resolve a package name (and optional version) against a registry."""

    def fetch(
        self, name: str, version: str | None = None
    ) -> tuple[PackageIdentity, PackageMetadata]:
        """Return the resolved identity and its metadata.

        Without *version*, the newest stable version is chosen.

        Raises:
            NotFoundError: The package or version does not exist.
            NetworkError: The registry could not be reached.
        """
        ...


@runtime_checkable
class ArtifactGenerator(Protocol):
    """Produce the packaging artifact for one package identity."""

    def generate(self, identity: PackageIdentity) -> ArtifactHandle:
        """Generate the artifact.

        Raises:
            GenerationError: The artifact could not be produced.
        """
        ...


@runtime_checkable
class ManifestResolver(Protocol):
    """Run the ecosystem's resolver on a manifest."""

    def resolve(self, manifest_text: str) -> str:
        """Return lock file text for *manifest_text*.

        Raises:
            ResolutionError: The resolver failed.
        """
        ...
