"""In-memory partition store."""

import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.domain.enums import UpsertOutcome
from pulse_sync.domain.errors import StoreUnavailable
from pulse_sync.domain.models import Record, UpsertResult, content_equal, record_id
from pulse_sync.domain.policy import merge_records
from pulse_sync.logging import get_logger
from pulse_sync.utils.deadline import Deadline

logger = get_logger(__name__)


class InMemoryPartitionStore(PartitionStore):
    """Partition store backed by a dict of day key -> video id -> record.

    Used for the offline cache and in tests. Batches are staged on a copy of
    the touched partitions and swapped in only when the whole batch succeeds.
    Records are copied on the way in and out so callers never alias stored
    state.
    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._lock = threading.RLock()
        self._partitions: dict[str, dict[str, Record]] = {}
        self.available = True
        for record in records:
            self._partitions.setdefault(record.day_key, {})[record.video_id] = replace(record)

    def _ensure_available(self) -> None:
        if not self.available:
            raise StoreUnavailable("in-memory store is marked unavailable")

    def get_partitions(self, day_keys: Iterable[str]) -> dict[str, list[Record]]:
        self._ensure_available()
        with self._lock:
            return {
                day_key: [replace(r) for r in self._partitions.get(day_key, {}).values()]
                for day_key in day_keys
            }

    def get(self, video_id: str, day_key: str) -> Record | None:
        self._ensure_available()
        with self._lock:
            record = self._partitions.get(day_key, {}).get(video_id)
            return replace(record) if record is not None else None

    def upsert_many(
        self,
        records: Sequence[Record],
        now: datetime,
        deadline: Deadline | None = None,
    ) -> list[UpsertResult]:
        self._ensure_available()
        results: list[UpsertResult] = []
        with self._lock:
            staged: dict[str, dict[str, Record]] = {}
            for record in records:
                if deadline is not None:
                    deadline.check("upsert_many")
                partition = staged.get(record.day_key)
                if partition is None:
                    partition = dict(self._partitions.get(record.day_key, {}))
                    staged[record.day_key] = partition

                existing = partition.get(record.video_id)
                if existing is None:
                    stored = replace(
                        record,
                        id=record_id(record.video_id, record.day_key),
                        created_at=record.created_at or now,
                        updated_at=now,
                        version=1,
                    )
                    partition[record.video_id] = stored
                    results.append(UpsertResult(UpsertOutcome.INSERTED, replace(stored)))
                    continue

                merged = merge_records(existing, record)
                if content_equal(merged, existing):
                    results.append(UpsertResult(UpsertOutcome.UNCHANGED, replace(existing)))
                    continue
                stored = replace(merged, updated_at=now, version=existing.version + 1)
                partition[record.video_id] = stored
                results.append(UpsertResult(UpsertOutcome.UPDATED, replace(stored)))

            if deadline is not None:
                deadline.check("upsert_many")
            self._partitions.update(staged)
        return results

    def changed_since(self, since: datetime | None) -> list[Record]:
        self._ensure_available()
        with self._lock:
            rows = [
                replace(r)
                for partition in self._partitions.values()
                for r in partition.values()
                if since is None or (r.updated_at is not None and r.updated_at > since)
            ]
        return sorted(
            rows,
            key=lambda r: (r.updated_at.timestamp() if r.updated_at else 0.0, r.day_key, r.video_id),
        )

    def has_changes_since(self, since: datetime | None) -> bool:
        self._ensure_available()
        with self._lock:
            return any(
                since is None or (r.updated_at is not None and r.updated_at > since)
                for partition in self._partitions.values()
                for r in partition.values()
            )

    def delete_by_ids(self, ids: Iterable[UUID]) -> int:
        self._ensure_available()
        wanted = set(ids)
        deleted = 0
        with self._lock:
            for partition in self._partitions.values():
                for video_id in [v for v, r in partition.items() if r.id in wanted]:
                    del partition[video_id]
                    deleted += 1
            self._drop_empty()
        return deleted

    def delete_before(self, cutoff_day_key: str) -> int:
        self._ensure_available()
        with self._lock:
            expired = [day_key for day_key in self._partitions if day_key < cutoff_day_key]
            deleted = sum(len(self._partitions[day_key]) for day_key in expired)
            for day_key in expired:
                del self._partitions[day_key]
        logger.debug("memory_store_delete_before", cutoff=cutoff_day_key, days=expired, deleted=deleted)
        return deleted

    def day_keys(self) -> list[str]:
        self._ensure_available()
        with self._lock:
            return sorted(day_key for day_key, partition in self._partitions.items() if partition)

    def health_check(self) -> bool:
        return self.available

    def _drop_empty(self) -> None:
        for day_key in [d for d, partition in self._partitions.items() if not partition]:
            del self._partitions[day_key]
