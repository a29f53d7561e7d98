"""Package database records.

Pure data holders with no I/O, safe to import from anywhere in the package.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any


class RecordStatus(str, enum.Enum):
    """Outcome recorded for a package identity.

    ``PROCESSED`` means "done": the identity never re-enters a frontier.
    ``FAILED`` is not terminal; a later run offers the identity again.
    """

    PROCESSED = "processed"
    FAILED = "failed"


@dataclass(frozen=True)
class DatabaseRecord:
    """Ledger entry for one package identity.

    Attributes:
        status: Latest recorded outcome.
        first_seen: When the identity first entered the ledger (UTC).
        updated_at: When the record last changed (UTC).
        attempts: Number of generation attempts recorded so far.
        last_error: Cause of the most recent failure, if the latest
            outcome was a failure.
    """

    status: RecordStatus
    first_seen: datetime
    updated_at: datetime
    attempts: int = 1
    last_error: str | None = None

    @property
    def is_processed(self) -> bool:
        return self.status is RecordStatus.PROCESSED

    @classmethod
    def processed(cls, now: datetime) -> DatabaseRecord:
        """Record a successful attempt made at *now*."""
        return cls(status=RecordStatus.PROCESSED, first_seen=now, updated_at=now)

    @classmethod
    def failed(cls, now: datetime, cause: str) -> DatabaseRecord:
        """Record a failed attempt made at *now*."""
        return cls(
            status=RecordStatus.FAILED,
            first_seen=now,
            updated_at=now,
            last_error=cause,
        )

    def combine(self, newer: DatabaseRecord) -> DatabaseRecord:
        """Fold a newer record into this one.

        A processed record absorbs nothing. Otherwise the newer outcome
        wins, the original ``first_seen`` is kept and attempts add up.
        """
        if self.is_processed:
            return self
        return replace(
            newer,
            first_seen=min(self.first_seen, newer.first_seen),
            attempts=self.attempts + newer.attempts,
        )

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "status": self.status.value,
            "first_seen": self.first_seen.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "attempts": self.attempts,
        }
        if self.last_error is not None:
            entry["last_error"] = self.last_error
        return entry

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DatabaseRecord:
        """Build a record from its serialized form.

        Raises:
            ValueError: If a field is missing or has the wrong type.
        """
        try:
            status = RecordStatus(data["status"])
            first_seen = datetime.fromisoformat(data["first_seen"])
            updated_at = datetime.fromisoformat(data.get("updated_at", data["first_seen"]))
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid record {data!r}") from exc
        if first_seen.tzinfo is None:
            first_seen = first_seen.replace(tzinfo=timezone.utc)
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        attempts = data.get("attempts", 1)
        last_error = data.get("last_error")
        if not isinstance(attempts, int) or attempts < 0:
            raise ValueError(f"invalid attempts count {attempts!r}")
        if last_error is not None and not isinstance(last_error, str):
            raise ValueError(f"invalid last_error {last_error!r}")
        return cls(
            status=status,
            first_seen=first_seen,
            updated_at=updated_at,
            attempts=attempts,
            last_error=last_error,
        )
