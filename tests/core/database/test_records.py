"""Tests for DatabaseRecord construction, folding and serialization."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from lockledger.core.database import DatabaseRecord, RecordStatus


class TestConstructors:
    def test_processed(self, now: datetime) -> None:
        record = DatabaseRecord.processed(now)
        assert record.is_processed
        assert record.first_seen == record.updated_at == now
        assert record.attempts == 1
        assert record.last_error is None

    def test_failed(self, now: datetime) -> None:
        record = DatabaseRecord.failed(now, "boom")
        assert not record.is_processed
        assert record.status is RecordStatus.FAILED
        assert record.last_error == "boom"


class TestCombine:
    """Tests for folding a newer outcome into an existing record."""

    def test_processed_absorbs_everything(self, now: datetime) -> None:
        done = DatabaseRecord.processed(now)
        assert done.combine(DatabaseRecord.failed(now + timedelta(1), "x")) is done

    def test_failed_keeps_earliest_first_seen(self, now: datetime) -> None:
        older = DatabaseRecord.failed(now, "a")
        newer = DatabaseRecord.failed(now + timedelta(hours=2), "b")
        combined = older.combine(newer)
        assert combined.first_seen == now
        assert combined.updated_at == now + timedelta(hours=2)
        assert combined.attempts == 2
        assert combined.last_error == "b"


class TestSerialization:
    def test_dict_round_trip(self, now: datetime) -> None:
        record = DatabaseRecord.failed(now, "compile error")
        assert DatabaseRecord.from_dict(record.to_dict()) == record

    def test_updated_at_defaults_to_first_seen(self) -> None:
        record = DatabaseRecord.from_dict(
            {"status": "processed", "first_seen": "2024-01-01T00:00:00+00:00"}
        )
        assert record.updated_at == record.first_seen

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"status": "processed"},
            {"status": "processed", "first_seen": 5},
            {"status": "failed", "first_seen": "2024-01-01T00:00:00", "last_error": 3},
            {"status": "failed", "first_seen": "2024-01-01T00:00:00", "attempts": "2"},
        ],
    )
    def test_invalid(self, data: dict) -> None:
        with pytest.raises(ValueError):
            DatabaseRecord.from_dict(data)
