"""Collaborators the tracking engine calls out to.

Public API::

    from lockledger.collaborators import (
        ArtifactGenerator, ArtifactHandle, CargoResolver, CommandGenerator,
        ManifestResolver, MetadataFetcher, PackageMetadata,
    )
"""

from __future__ import annotations

from lockledger.collaborators.base import (
    ArtifactGenerator,
    ArtifactHandle,
    ManifestResolver,
    MetadataFetcher,
    PackageMetadata,
)
from lockledger.collaborators.cargo_resolver import CargoResolver, synthetic_manifest
from lockledger.collaborators.command_generator import CommandGenerator, artifact_dirname

__all__ = [
    "ArtifactGenerator",
    "ArtifactHandle",
    "CargoResolver",
    "CommandGenerator",
    "ManifestResolver",
    "MetadataFetcher",
    "PackageMetadata",
    "artifact_dirname",
    "synthetic_manifest",
]
