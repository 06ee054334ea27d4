"""Tests for the reconciliation engine facade."""

from uuid import uuid4

import pytest

from pulse_sync.adapters.store.memory import InMemoryPartitionStore
from pulse_sync.domain.enums import RecordStatus
from pulse_sync.domain.models import Record
from pulse_sync.services.engine import ReconciliationEngine


def test_normalize_and_merge_reports_raw_indexes(engine, make_raw) -> None:
    report = engine.normalize_and_merge([make_raw("a"), {"videoId": "b"}, "junk", make_raw("c")])

    assert report.inserted == 2
    assert [item.index for item in report.rejected] == [1, 2]
    assert report.day_keys == ["2025-10-12"]


def test_query_range_orders_by_day_then_views(engine, make_raw) -> None:
    engine.normalize_and_merge(
        [
            make_raw("a", day="2025-10-12", viewCount=1),
            make_raw("b", day="2025-10-12", viewCount=50),
            make_raw("c", day="2025-10-11", viewCount=7),
        ]
    )

    records = engine.query_range(["2025-10-12", "2025-10-11"])

    assert [(r.day_key, r.video_id) for r in records] == [
        ("2025-10-11", "c"),
        ("2025-10-12", "b"),
        ("2025-10-12", "a"),
    ]


def test_query_range_rejects_bad_day_key(engine) -> None:
    with pytest.raises(ValueError):
        engine.query_range(["2025-13-01"])


def test_queries_union_secondary_logs(memory_store, clock, make_raw) -> None:
    manual_log = InMemoryPartitionStore(
        [
            Record(
                video_id="a",
                day_key="2025-10-12",
                view_count=999,
                status=RecordStatus.CLASSIFIED,
                category="Music",
            ),
            Record(video_id="z", day_key="2025-10-09", view_count=1),
        ]
    )
    engine = ReconciliationEngine(memory_store, clock=clock, timezone="Asia/Seoul", extra_logs=[manual_log])
    engine.normalize_and_merge([make_raw("a", viewCount=100), make_raw("b")])

    records = engine.query_by_day("2025-10-12")

    assert [r.video_id for r in records] == ["a", "b"]
    assert records[0].view_count == 999
    assert engine.day_keys() == ["2025-10-09", "2025-10-12"]
    # Secondary logs are read-only.
    assert memory_store.get("a", "2025-10-12").view_count == 100


def test_recent_day_keys(engine, make_raw) -> None:
    engine.normalize_and_merge([make_raw("a", day=d) for d in ["2025-10-08", "2025-10-10", "2025-10-12"]])

    assert engine.recent_day_keys(2) == ["2025-10-12", "2025-10-10"]
    assert engine.recent_day_keys(0) == []


def test_summarize_days(engine, make_raw) -> None:
    engine.normalize_and_merge(
        [
            make_raw("a", viewCount=100, status="classified", category="Music"),
            make_raw("b", viewCount=50, status="pending"),
            make_raw("c", viewCount=25),
            make_raw("d", day="2025-10-11", viewCount=5),
        ]
    )

    summaries = engine.summarize_days()

    assert [s.day_key for s in summaries] == ["2025-10-12", "2025-10-11"]
    today = summaries[0]
    assert (today.total, today.classified, today.pending, today.unclassified) == (3, 1, 1, 1)
    assert today.total_views == 175
    assert today.to_dict()["progress"] == pytest.approx(0.3333)


def test_summarize_empty_day(engine) -> None:
    [summary] = engine.summarize_days(["2025-10-01"])
    assert summary.total == 0
    assert summary.progress == 0.0


def test_delete_by_ids_accepts_strings(engine, make_raw) -> None:
    engine.normalize_and_merge([make_raw("a"), make_raw("b")])
    a = next(r for r in engine.query_by_day("2025-10-12") if r.video_id == "a")

    assert engine.delete_by_ids([str(a.id), str(uuid4())]) == 1
    assert [r.video_id for r in engine.query_by_day("2025-10-12")] == ["b"]


def test_delete_by_ids_rejects_malformed_id(engine) -> None:
    with pytest.raises(ValueError):
        engine.delete_by_ids(["not-a-uuid"])


def test_today(engine) -> None:
    assert engine.today() == "2025-10-12"
