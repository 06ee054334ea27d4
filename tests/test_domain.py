"""Tests for domain models."""

from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID

from pulse_sync.domain.enums import STATUS_RANK, CollectionType, RecordStatus, RejectionReason
from pulse_sync.domain.errors import LeaseUnavailable, MissingTimestamp, RecordValidationError
from pulse_sync.domain.models import (
    DaySummary,
    MergeReport,
    Record,
    RejectedItem,
    RestoreReport,
    SyncSnapshot,
    content_equal,
)


def test_record_defaults() -> None:
    """Test a record built from its key alone."""
    record = Record(video_id="abc", day_key="2025-10-12")

    assert isinstance(record.id, UUID)
    assert record.key == ("abc", "2025-10-12")
    assert record.view_count == 0
    assert record.status == RecordStatus.UNCLASSIFIED
    assert record.collection_type == CollectionType.MANUAL
    assert record.version == 0


def test_record_to_dict_is_camel_case() -> None:
    """Test the wire form of a record."""
    collected = datetime(2025, 10, 12, 1, 0, tzinfo=UTC)
    record = Record(
        video_id="abc",
        day_key="2025-10-12",
        view_count=42,
        collection_date=collected,
        status=RecordStatus.CLASSIFIED,
    )

    data = record.to_dict()

    assert data["videoId"] == "abc"
    assert data["dayKeyLocal"] == "2025-10-12"
    assert data["viewCount"] == 42
    assert data["collectionDate"] == "2025-10-12T01:00:00+00:00"
    assert data["status"] == "classified"
    assert data["id"] == str(record.id)
    assert "video_id" not in data


def test_content_equal_ignores_bookkeeping() -> None:
    """Test that ids, timestamps and versions do not count as content."""
    a = Record(video_id="abc", day_key="2025-10-12", view_count=5)
    b = replace(a, id=Record(video_id="x", day_key="2025-10-12").id, version=7, updated_at=datetime.now(UTC))

    assert content_equal(a, b)
    assert not content_equal(a, replace(a, view_count=6))


def test_status_rank_order() -> None:
    """Test that classification authority increases as declared."""
    assert (
        STATUS_RANK[RecordStatus.UNCLASSIFIED]
        < STATUS_RANK[RecordStatus.PENDING]
        < STATUS_RANK[RecordStatus.CLASSIFIED]
    )


def test_merge_report_to_dict() -> None:
    """Test merge report counters and serialization."""
    report = MergeReport(
        inserted=2,
        updated=1,
        unchanged=3,
        rejected=[RejectedItem(index=4, reason=RejectionReason.INVALID_METRIC, detail="bad", video_id="v")],
        day_keys=["2025-10-12"],
    )

    assert report.accepted == 6
    assert report.to_dict() == {
        "inserted": 2,
        "updated": 1,
        "unchanged": 3,
        "accepted": 6,
        "rejectedCount": 1,
        "rejected": [{"index": 4, "reason": "invalid_metric", "detail": "bad", "videoId": "v"}],
        "dayKeys": ["2025-10-12"],
    }


def test_restore_report_counts_only_changes() -> None:
    """Test that unchanged records are not counted as restored."""
    report = RestoreReport(snapshot_size=5, merge=MergeReport(inserted=1, updated=1, unchanged=3))

    data = report.to_dict()

    assert report.restored == 2
    assert data["snapshotSize"] == 5
    assert data["restored"] == 2
    assert data["unchanged"] == 3


def test_day_summary_progress() -> None:
    """Test classification progress of a day."""
    assert DaySummary(day_key="2025-10-12").progress == 0.0

    summary = DaySummary(day_key="2025-10-12", total=3, classified=1, pending=1, unclassified=1, total_views=30)

    assert summary.to_dict()["progress"] == 0.3333
    assert summary.to_dict()["totalViews"] == 30


def test_sync_snapshot_to_dict() -> None:
    """Test snapshot serialization."""
    sync_time = datetime(2025, 10, 12, 3, 0, tzinfo=UTC)
    snapshot = SyncSnapshot(records=[Record(video_id="a", day_key="2025-10-12")], sync_time=sync_time)

    data = snapshot.to_dict()

    assert data["count"] == 1
    assert data["syncTime"] == "2025-10-12T03:00:00+00:00"
    assert data["records"][0]["videoId"] == "a"


def test_missing_timestamp_is_a_validation_error() -> None:
    """Test the per-item error hierarchy."""
    error = MissingTimestamp()

    assert isinstance(error, RecordValidationError)
    assert error.reason == RejectionReason.MISSING_TIMESTAMP


def test_lease_unavailable_names_holder() -> None:
    """Test the lease error message."""
    error = LeaseUnavailable("auto", "harvester")

    assert error.holder == "harvester"
    assert "harvester" in str(error)
