"""Batch orchestration over a frontier.

- ``models``: ``BatchResult`` and ``FailedPackage``.
- ``orchestrator``: ``BatchOrchestrator`` and the ``run`` shortcut.
"""

from lockledger.core.batch.models import BatchResult, FailedPackage
from lockledger.core.batch.orchestrator import BatchOrchestrator, run

__all__ = [
    "BatchOrchestrator",
    "BatchResult",
    "FailedPackage",
    "run",
]
