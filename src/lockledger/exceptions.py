"""lockledger exception hierarchy.

All public exceptions inherit from LockLedgerError, giving callers a single
base class to catch when they want to handle any lockledger-specific failure
without swallowing unrelated errors.

Parse, resolution, storage and configuration errors are fatal to a run and
abort it before any package is processed. Generation errors (and the network
errors that cause them) are isolated per package by the batch orchestrator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lockledger.core.graph.identity import PackageIdentity


class LockLedgerError(Exception):
    """Base exception for all lockledger errors."""


class ParseError(LockLedgerError):
    """Raised when dependency input cannot be turned into a graph.

    Covers invalid TOML, lock files missing required fields, input whose
    shape is neither a manifest nor a lock file, and malformed version
    strings.
    """


class ResolutionError(LockLedgerError):
    """Raised when an external resolver fails to produce a lock file.

    The core never solves version constraints itself; this wraps failures
    of the ecosystem resolver invoked on a manifest.
    """


class StorageError(LockLedgerError):
    """Raised when the package database cannot be read or written.

    A corrupt database is never silently discarded: continuing without a
    trustworthy ledger risks duplicate work or silent data loss.
    """


class ConfigError(LockLedgerError):
    """Raised for unreadable or invalid configuration files."""


class NetworkError(LockLedgerError):
    """Raised by metadata fetchers on transport or HTTP failures."""


class NotFoundError(LockLedgerError):
    """Raised by metadata fetchers when a package or version does not exist."""


class GenerationError(LockLedgerError):
    """Raised when an artifact could not be generated for one package.

    Attributes:
        identity: The package whose artifact failed.
        cause: The underlying exception or a human-readable reason.
    """

    def __init__(self, identity: PackageIdentity, cause: BaseException | str) -> None:
        self.identity = identity
        self.cause = cause
        super().__init__(f"{identity}: {cause}")

    @property
    def reason(self) -> str:
        """Return the cause rendered as a single line of text."""
        if isinstance(self.cause, BaseException):
            text = str(self.cause) or type(self.cause).__name__
        else:
            text = self.cause
        return text.strip() or "unknown error"
