"""Package database: the persistent ledger of processed packages.

- ``models``: ``RecordStatus`` and ``DatabaseRecord`` data classes.
- ``database``: the ``PackageDatabase`` with load, merge and atomic save.
- ``hooks``: ``SaveHook`` protocol and the git auto-commit hook.
"""

from lockledger.core.database.database import PackageDatabase
from lockledger.core.database.hooks import GitCommitHook, SaveHook
from lockledger.core.database.models import DatabaseRecord, RecordStatus

__all__ = [
    "DatabaseRecord",
    "GitCommitHook",
    "PackageDatabase",
    "RecordStatus",
    "SaveHook",
]
