"""Package registry clients.

Public API::

    from lockledger.registry import CratesIoFetcher
"""

from __future__ import annotations

from lockledger.registry.crates_io import CratesIoFetcher

__all__ = [
    "CratesIoFetcher",
]
