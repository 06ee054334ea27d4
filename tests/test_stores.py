"""Tests for partition stores (in-memory and SQLite-backed)."""

import time
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from pulse_sync.domain.enums import RecordStatus, UpsertOutcome
from pulse_sync.domain.errors import DeadlineExceeded, StoreUnavailable
from pulse_sync.domain.models import Record, record_id
from pulse_sync.utils.deadline import Deadline

NOW = datetime(2025, 10, 12, 3, 0, tzinfo=UTC)


class ExpiresAfter:
    """A deadline that passes after ``checks`` successful checks."""

    def __init__(self, checks: int) -> None:
        self.remaining_checks = checks

    def check(self, operation: str = "batch") -> None:
        if self.remaining_checks <= 0:
            raise DeadlineExceeded(f"{operation} exceeded its deadline")
        self.remaining_checks -= 1


def _record(video_id: str = "v1", day_key: str = "2025-10-12", **kwargs) -> Record:
    return Record(video_id=video_id, day_key=day_key, **kwargs)


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, sql_store):
    return memory_store if request.param == "memory" else sql_store


class TestPartitionStore:
    """Behavior shared by every store implementation."""

    def test_insert_update_unchanged(self, store):
        [inserted] = store.upsert_many([_record(view_count=10, title="A")], now=NOW)
        assert inserted.outcome == UpsertOutcome.INSERTED
        assert inserted.record.version == 1

        [updated] = store.upsert_many([_record(view_count=20)], now=NOW + timedelta(minutes=1))
        assert updated.outcome == UpsertOutcome.UPDATED
        assert updated.record.version == 2
        assert updated.record.view_count == 20
        assert updated.record.title is None

        [unchanged] = store.upsert_many([_record(view_count=5)], now=NOW + timedelta(minutes=2))
        assert unchanged.outcome == UpsertOutcome.UNCHANGED
        assert unchanged.record.version == 2
        assert unchanged.record.updated_at == NOW + timedelta(minutes=1)

    def test_merge_policy_applied_on_write(self, store):
        store.upsert_many(
            [_record(view_count=100, status=RecordStatus.CLASSIFIED, category="Music", keyword="kpop")],
            now=NOW,
        )
        store.upsert_many(
            [_record(view_count=80, like_count=3, status=RecordStatus.UNCLASSIFIED, keyword=None)],
            now=NOW + timedelta(minutes=1),
        )

        stored = store.get("v1", "2025-10-12")
        assert stored.view_count == 100
        assert stored.like_count == 3
        assert stored.status == RecordStatus.CLASSIFIED
        assert stored.category == "Music"
        assert stored.keyword == "kpop"

    def test_classification_correction_keeps_missing_category(self, store):
        store.upsert_many(
            [_record(status=RecordStatus.CLASSIFIED, category="Music", sub_category="K-pop")],
            now=NOW,
        )
        store.upsert_many([_record(status=RecordStatus.CLASSIFIED)], now=NOW + timedelta(minutes=1))
        store.upsert_many(
            [_record(status=RecordStatus.CLASSIFIED, category="Gaming")],
            now=NOW + timedelta(minutes=2),
        )

        stored = store.get("v1", "2025-10-12")
        assert stored.status == RecordStatus.CLASSIFIED
        assert stored.category == "Gaming"
        assert stored.sub_category == "K-pop"

    def test_incoming_id_is_never_written(self, store):
        shared = uuid4()
        store.upsert_many([_record("a", "2025-10-11", id=shared)], now=NOW)

        # The same cached id filed under another day and sent with a new key.
        results = store.upsert_many(
            [_record("a", "2025-10-12", id=shared), _record("b", id=shared)],
            now=NOW + timedelta(minutes=1),
        )

        assert [r.outcome for r in results] == [UpsertOutcome.INSERTED, UpsertOutcome.INSERTED]
        ids = {
            store.get("a", "2025-10-11").id,
            store.get("a", "2025-10-12").id,
            store.get("b", "2025-10-12").id,
        }
        assert len(ids) == 3
        assert shared not in ids
        assert store.get("a", "2025-10-12").id == record_id("a", "2025-10-12")
        assert store.delete_by_ids([record_id("a", "2025-10-12")]) == 1
        assert store.get("a", "2025-10-11") is not None

    def test_collection_date_takes_latest(self, store):
        late = datetime(2025, 10, 12, 9, 0, tzinfo=UTC)
        store.upsert_many([_record(collection_date=late)], now=NOW)
        store.upsert_many([_record(collection_date=late - timedelta(hours=5))], now=NOW)
        assert store.get("v1", "2025-10-12").collection_date == late

    def test_get_partitions_loads_only_requested_days(self, store):
        store.upsert_many(
            [_record("a", "2025-10-10"), _record("b", "2025-10-11"), _record("c", "2025-10-12")],
            now=NOW,
        )

        partitions = store.get_partitions(["2025-10-11", "2025-10-09"])

        assert set(partitions) == {"2025-10-11", "2025-10-09"}
        assert [r.video_id for r in partitions["2025-10-11"]] == ["b"]
        assert partitions["2025-10-09"] == []

    def test_changed_since(self, store):
        store.upsert_many([_record("a")], now=NOW)
        store.upsert_many([_record("b")], now=NOW + timedelta(minutes=10))

        assert [r.video_id for r in store.changed_since(None)] == ["a", "b"]
        assert [r.video_id for r in store.changed_since(NOW)] == ["b"]
        assert store.has_changes_since(NOW)
        assert not store.has_changes_since(NOW + timedelta(minutes=10))

    def test_delete_by_ids(self, store):
        results = store.upsert_many([_record("a"), _record("b")], now=NOW)
        a_id = results[0].record.id

        assert store.delete_by_ids([a_id]) == 1
        assert store.get("a", "2025-10-12") is None
        assert store.get("b", "2025-10-12") is not None
        assert store.delete_by_ids([]) == 0

    def test_delete_before_is_strict(self, store):
        store.upsert_many(
            [_record("a", "2025-09-20"), _record("b", "2025-09-28"), _record("c", "2025-10-10")],
            now=NOW,
        )

        assert store.delete_before("2025-09-28") == 1
        assert store.day_keys() == ["2025-09-28", "2025-10-10"]

    def test_deadline_exceeded_commits_nothing(self, store):
        store.upsert_many([_record("a", view_count=1)], now=NOW)

        with pytest.raises(DeadlineExceeded):
            store.upsert_many(
                [_record("a", view_count=50), _record("b"), _record("c")],
                now=NOW + timedelta(minutes=1),
                deadline=ExpiresAfter(2),
            )

        assert store.get("a", "2025-10-12").view_count == 1
        assert store.get("b", "2025-10-12") is None
        assert store.get("c", "2025-10-12") is None

    def test_expired_deadline_rejects_batch(self, store):
        expired = Deadline(expires_at=time.monotonic() - 1)
        with pytest.raises(DeadlineExceeded):
            store.upsert_many([_record("a")], now=NOW, deadline=expired)
        assert store.day_keys() == []

    def test_health_check(self, store):
        assert store.health_check() is True


def test_memory_store_unavailable(memory_store) -> None:
    memory_store.available = False

    with pytest.raises(StoreUnavailable):
        memory_store.upsert_many([_record()], now=NOW)

    memory_store.available = True
    assert memory_store.day_keys() == []


def test_memory_store_does_not_alias_records(memory_store) -> None:
    record = _record(view_count=1)
    memory_store.upsert_many([record], now=NOW)
    record.view_count = 999

    fetched = memory_store.get("v1", "2025-10-12")
    fetched.view_count = 555

    assert memory_store.get("v1", "2025-10-12").view_count == 1


def test_sql_store_round_trips_timestamps_as_utc(sql_store) -> None:
    collected = datetime(2025, 10, 12, 10, 0, tzinfo=UTC)
    sql_store.upsert_many([_record(collection_date=collected)], now=NOW)

    stored = sql_store.get("v1", "2025-10-12")
    assert stored.collection_date == collected
    assert stored.collection_date.tzinfo is not None
    assert stored.updated_at == NOW


def test_sql_store_connection_failure_is_store_unavailable() -> None:
    from sqlalchemy import create_engine

    from pulse_sync.adapters.store.sql import SqlPartitionStore

    broken = SqlPartitionStore(create_engine("sqlite:////nonexistent-dir/pulse.db"))

    with pytest.raises(StoreUnavailable):
        broken.upsert_many([_record()], now=NOW)
    assert broken.health_check() is False
