"""Tests for the Celery tasks, run eagerly against in-memory backends."""

from unittest.mock import patch

import pytest

from pulse_sync.domain.enums import CollectionType
from pulse_sync.jobs import ingestion_tasks, retention_tasks


@pytest.fixture
def wired(monkeypatch, engine, lease_backend):
    """Point the tasks at the in-memory engine and lease backend."""
    monkeypatch.setattr(ingestion_tasks, "get_engine", lambda: engine)
    monkeypatch.setattr(ingestion_tasks, "get_lease_backend", lambda: lease_backend)
    monkeypatch.setattr(retention_tasks, "get_engine", lambda: engine)
    return engine


class TestIngestRecordsTask:
    def test_merges_batch(self, wired, lease_backend, make_raw) -> None:
        result = ingestion_tasks.ingest_records_task.apply(
            kwargs={"records": [make_raw("a"), make_raw("b"), {"videoId": ""}], "collection_type": "auto"}
        ).get()

        assert result["success"] is True
        assert result["collection_type"] == "auto"
        assert result["inserted"] == 2
        assert result["rejectedCount"] == 1
        assert len(wired.query_by_day("2025-10-12")) == 2
        # Lease is released afterwards.
        assert lease_backend.current(CollectionType.AUTO) is None

    def test_rerun_changes_nothing(self, wired, make_raw) -> None:
        batch = [make_raw("a"), make_raw("b")]
        ingestion_tasks.ingest_records_task.apply(kwargs={"records": batch}).get()

        result = ingestion_tasks.ingest_records_task.apply(kwargs={"records": batch}).get()

        assert result["inserted"] == 0
        assert result["unchanged"] == 2

    def test_busy_lease_schedules_retry(self, wired, lease_backend, make_raw) -> None:
        lease_backend.acquire(CollectionType.MANUAL, "operator", 60)
        task = ingestion_tasks.ingest_records_task

        with patch.object(task, "retry", side_effect=RuntimeError("retry scheduled")) as retry:
            with pytest.raises(RuntimeError):
                task(records=[make_raw("a")], collection_type="manual")

        assert retry.call_args.kwargs["countdown"] == 30
        assert wired.query_by_day("2025-10-12") == []


class TestRetentionSweepTask:
    def test_sweeps_old_days(self, wired, make_raw) -> None:
        wired.normalize_and_merge([make_raw("old", day="2025-09-01"), make_raw("new")])

        result = retention_tasks.retention_sweep_task.apply(kwargs={"retention_days": 14}).get()

        assert result["success"] is True
        assert result["cutoff"] == "2025-09-28"
        assert result["deleted"] == 1
        assert wired.day_keys() == ["2025-10-12"]

    def test_worker_ready_honours_setting(self, monkeypatch) -> None:
        with patch.object(retention_tasks.retention_sweep_task, "apply_async") as apply_async:
            monkeypatch.setattr(retention_tasks.settings, "sweep_on_startup", False)
            retention_tasks.sweep_on_worker_ready()
            apply_async.assert_not_called()

            monkeypatch.setattr(retention_tasks.settings, "sweep_on_startup", True)
            retention_tasks.sweep_on_worker_ready()
            apply_async.assert_called_once_with(queue="low")
