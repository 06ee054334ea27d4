"""Tests for read-time deduplication."""

from datetime import UTC, datetime, timedelta

from pulse_sync.domain.models import Record
from pulse_sync.services.dedupe import dedupe

T0 = datetime(2025, 10, 12, 3, 0, tzinfo=UTC)


def test_keeps_highest_view_count() -> None:
    records = [
        Record(video_id="v1", day_key="2025-10-12", view_count=10, source="auto"),
        Record(video_id="v1", day_key="2025-10-12", view_count=300, source="manual"),
        Record(video_id="v1", day_key="2025-10-12", view_count=200, source="classified"),
    ]

    result = dedupe(records)

    assert len(result) == 1
    assert result[0].view_count == 300
    assert result[0].source == "manual"


def test_ties_broken_by_most_recent_update() -> None:
    older = Record(video_id="v1", day_key="2025-10-12", view_count=5, title="old", updated_at=T0)
    newer = Record(
        video_id="v1", day_key="2025-10-12", view_count=5, title="new", updated_at=T0 + timedelta(hours=1)
    )
    unknown = Record(video_id="v1", day_key="2025-10-12", view_count=5, title="unknown")

    assert dedupe([older, unknown, newer])[0].title == "new"
    assert dedupe([unknown, older])[0].title == "old"


def test_same_video_on_different_days_is_kept() -> None:
    records = [
        Record(video_id="v1", day_key="2025-10-11", view_count=1),
        Record(video_id="v1", day_key="2025-10-12", view_count=2),
        Record(video_id="v2", day_key="2025-10-12", view_count=3),
    ]

    result = dedupe(records)

    assert {r.key for r in result} == {("v1", "2025-10-11"), ("v1", "2025-10-12"), ("v2", "2025-10-12")}
    assert [r.view_count for r in result] == [3, 2, 1]


def test_empty() -> None:
    assert dedupe([]) == []
