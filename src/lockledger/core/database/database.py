"""Persistent ledger of processed packages.

The ``PackageDatabase`` maps ``PackageIdentity`` to ``DatabaseRecord`` and is
the single source of truth for "already done". It is loaded once at the start
of a run, mutated in memory while the frontier is processed, and written back
with an atomic write-then-rename.

The ledger only grows: entries are never deleted, and a ``processed`` record
is never downgraded. A ``failed`` record counts as absent when the frontier
is computed, so failures are retried on the next run.

File format (JSON, keys sorted, byte-stable for identical content)::

    {
      "database_version": "1.0",
      "generated_by": "lockledger",
      "packages": {
        "serde": {
          "1.0.200": {"attempts": 1, "first_seen": "...", "status": "processed",
                      "updated_at": "..."}
        }
      }
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from lockledger.core.database.models import DatabaseRecord, RecordStatus
from lockledger.core.graph.identity import PackageIdentity, validate_version
from lockledger.exceptions import ParseError, StorageError

logger = logging.getLogger(__name__)


class PackageDatabase:
    """In-memory view of the ledger, with load and atomic save.

    Example::

        db = PackageDatabase.load(path)
        db.mark_processed(PackageIdentity("serde", "1.0.200"), now)
        db.save(path)
    """

    DATABASE_VERSION: str = "1.0"

    def __init__(self, records: Mapping[PackageIdentity, DatabaseRecord] | None = None) -> None:
        self._records: dict[PackageIdentity, DatabaseRecord] = dict(records or {})

    # -- Queries ------------------------------------------------------------

    def contains(self, identity: PackageIdentity) -> bool:
        """Return True only if *identity* is recorded as processed."""
        record = self._records.get(identity)
        return record is not None and record.is_processed

    def get(self, identity: PackageIdentity) -> DatabaseRecord | None:
        return self._records.get(identity)

    def records(self) -> dict[PackageIdentity, DatabaseRecord]:
        """Return a copy of all records, keyed by identity."""
        return dict(self._records)

    def processed(self) -> list[PackageIdentity]:
        return sorted(i for i, r in self._records.items() if r.is_processed)

    def failed(self) -> list[PackageIdentity]:
        return sorted(
            i for i, r in self._records.items() if r.status is RecordStatus.FAILED
        )

    def copy(self) -> PackageDatabase:
        """Return an independent snapshot of this database."""
        return PackageDatabase(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PackageIdentity]:
        return iter(sorted(self._records))

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __repr__(self) -> str:
        return f"PackageDatabase(entries={len(self._records)})"

    # -- Mutation -----------------------------------------------------------

    def merge(self, new_records: Mapping[PackageIdentity, DatabaseRecord]) -> None:
        """Add or overwrite records.

        Merging onto an existing ``processed`` record is a no-op, so a
        processed identity is never downgraded and re-merging processed
        records is idempotent. Merging onto a ``failed`` record keeps its
        ``first_seen`` and accumulates attempts.
        """
        for identity, record in new_records.items():
            existing = self._records.get(identity)
            if existing is None:
                self._records[identity] = record
            else:
                self._records[identity] = existing.combine(record)

    def mark_processed(self, identity: PackageIdentity, now: datetime) -> DatabaseRecord:
        """Record a successful attempt and return the resulting record."""
        self.merge({identity: DatabaseRecord.processed(now)})
        return self._records[identity]

    def mark_failed(
        self, identity: PackageIdentity, cause: str, now: datetime
    ) -> DatabaseRecord:
        """Record a failed attempt and return the resulting record."""
        self.merge({identity: DatabaseRecord.failed(now, cause)})
        return self._records[identity]

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        packages: dict[str, dict[str, Any]] = {}
        for identity in sorted(self._records):
            versions = packages.setdefault(identity.name, {})
            versions[identity.version] = self._records[identity].to_dict()
        return {
            "database_version": self.DATABASE_VERSION,
            "generated_by": "lockledger",
            "packages": packages,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True) + "\n"

    @classmethod
    def from_dict(cls, data: Any) -> PackageDatabase:
        """Build a database from its serialized form.

        Raises:
            StorageError: If the data does not match the database schema.
        """
        if not isinstance(data, dict) or not isinstance(data.get("packages"), dict):
            raise StorageError("Database file has no 'packages' mapping")

        records: dict[PackageIdentity, DatabaseRecord] = {}
        for name, versions in data["packages"].items():
            if not isinstance(versions, dict):
                raise StorageError(f"Database entry for {name!r} is not a mapping")
            for version, entry in versions.items():
                try:
                    identity = PackageIdentity(
                        name=name, version=validate_version(version, package=name)
                    )
                    records[identity] = DatabaseRecord.from_dict(entry)
                except (ParseError, ValueError, AttributeError) as exc:
                    raise StorageError(
                        f"Corrupt database entry {name} {version}: {exc}"
                    ) from exc
        return cls(records)

    @classmethod
    def load(cls, path: Path) -> PackageDatabase:
        """Load the ledger stored at *path*.

        A missing file is a first run and yields an empty database.

        Raises:
            StorageError: If the file exists but is unreadable or corrupt.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No database at %s, starting empty", path)
            return cls()
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read database file {path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Database file {path} is not valid JSON: {exc}") from exc
        db = cls.from_dict(data)
        logger.info("Loaded %d database entries from %s", len(db), path)
        return db

    def save(self, path: Path) -> None:
        """Write the ledger to *path* atomically.

        The content goes to a temporary file in the destination directory,
        which is then renamed over *path*. Readers see either the old file
        or the new one, never a partial write.

        Raises:
            StorageError: If the file cannot be written.
        """
        content = self.to_json()
        temp_path: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                newline="",
                delete=False,
                dir=str(path.parent),
                prefix=path.name + ".",
                suffix=".tmp",
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, path)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write database file {path}: {exc}") from exc
        logger.debug("Saved %d database entries to %s", len(self._records), path)
