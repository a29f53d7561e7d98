"""Batch result data models."""

from __future__ import annotations

from dataclasses import dataclass, field

from lockledger.collaborators.base import ArtifactHandle
from lockledger.core.database.models import DatabaseRecord
from lockledger.core.graph.identity import PackageIdentity


@dataclass(frozen=True)
class FailedPackage:
    """A frontier entry whose artifact could not be generated.

    Attributes:
        identity: The package that failed.
        cause: Human-readable failure cause.
    """

    identity: PackageIdentity
    cause: str


@dataclass
class BatchResult:
    """Aggregate outcome of one orchestrator run.

    ``succeeded`` and ``failed`` are in frontier order regardless of the
    order in which workers finished.

    Attributes:
        attempted: Number of identities whose generation was attempted.
        succeeded: Identities whose artifact was produced.
        failed: Identities whose generation failed, with causes.
        records: Ledger records written during this run, for persistence.
        artifacts: Artifact handles returned by the generator.
    """

    attempted: int = 0
    succeeded: list[PackageIdentity] = field(default_factory=list)
    failed: list[FailedPackage] = field(default_factory=list)
    records: dict[PackageIdentity, DatabaseRecord] = field(default_factory=dict)
    artifacts: dict[PackageIdentity, ArtifactHandle] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
