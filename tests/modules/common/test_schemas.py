"""Tests for shared schema types."""

from datetime import UTC, datetime, timedelta, timezone

from src.modules.version.schemas import VersionRead


def test_naive_timestamps_are_read_as_utc():
    version = VersionRead(id=1, name="v1", created_at=datetime(2025, 6, 23, 10, 30, 14))

    assert version.created_at == datetime(2025, 6, 23, 10, 30, 14, tzinfo=UTC)
    assert version.model_dump(mode="json", by_alias=True)["createdAt"] == "2025-06-23T10:30:14Z"


def test_aware_timestamps_are_converted_to_utc():
    plus_two = timezone(timedelta(hours=2))
    version = VersionRead(id=1, name="v1", created_at=datetime(2025, 6, 23, 12, 30, 14, tzinfo=plus_two))

    assert version.created_at == datetime(2025, 6, 23, 10, 30, 14, tzinfo=UTC)
    assert version.created_at.utcoffset() == timedelta(0)
