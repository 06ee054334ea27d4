"""Reconciliation engine facade.

``ReconciliationEngine`` is the single entry point used by the API routes,
the Celery tasks and the CLI. It wires the day key resolver, normalizer,
merge engine, sync coordinator and retention sweeper around one partition
store.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from functools import lru_cache
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.config import settings
from pulse_sync.domain.enums import RecordStatus
from pulse_sync.domain.models import (
    DaySummary,
    MergeReport,
    Record,
    RestoreReport,
    SweepResult,
    SyncSnapshot,
)
from pulse_sync.logging import get_logger
from pulse_sync.services.day_keys import DayKeyResolver, is_day_key
from pulse_sync.services.dedupe import dedupe
from pulse_sync.services.merge import MergeEngine
from pulse_sync.services.normalizer import RecordNormalizer
from pulse_sync.services.retention import RetentionSweeper
from pulse_sync.services.sync import SyncCoordinator
from pulse_sync.utils.clock import Clock, SystemClock
from pulse_sync.utils.deadline import Deadline

logger = get_logger(__name__)


class ReconciliationEngine:
    """Normalizes, merges, queries and prunes date-partitioned video records.

    Args:
        store: Authoritative partition store; all writes go here.
        clock: Time source for ``updated_at``, sync times and "today".
        timezone: Zone that defines day keys.
        extra_logs: Read-only secondary logs unioned into queries (for
            example a manually classified log kept apart from the automated
            one). Queries dedupe the union.
    """

    def __init__(
        self,
        store: PartitionStore,
        clock: Clock | None = None,
        timezone: str | None = None,
        extra_logs: Sequence[PartitionStore] = (),
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.resolver = DayKeyResolver(timezone or settings.day_key_timezone)
        self.extra_logs = list(extra_logs)
        self.normalizer = RecordNormalizer(self.resolver)
        self.merge_engine = MergeEngine(store, self.clock)
        self.sync = SyncCoordinator(store, self.merge_engine, self.normalizer, self.clock)
        self.sweeper = RetentionSweeper(store, self.clock, self.resolver.timezone)

    @property
    def timezone(self) -> ZoneInfo:
        return self.resolver.timezone

    def today(self) -> str:
        return self.resolver.today(self.clock)

    # Ingestion

    def normalize_and_merge(self, raw_batch: Iterable[Any], deadline: Deadline | None = None) -> MergeReport:
        """Validate raw producer payloads and merge the valid ones.

        Invalid items are reported, never raised; the rest of the batch is
        still merged.
        """
        batch = self.normalizer.normalize_batch(raw_batch)
        return batch.combine(self.merge_engine.merge_batch(batch.records, deadline=deadline))

    # Queries

    def _logs(self) -> list[PartitionStore]:
        return [self.store, *self.extra_logs]

    def query_range(self, day_keys: Iterable[str]) -> list[Record]:
        """Deduplicated records of the given days, ordered by day then views."""
        wanted = sorted(set(day_keys))
        for day_key in wanted:
            if not is_day_key(day_key):
                raise ValueError(f"invalid day key: {day_key!r}")
        if not wanted:
            return []

        collected: list[Record] = []
        for log in self._logs():
            for rows in log.get_partitions(wanted).values():
                collected.extend(rows)

        records = dedupe(collected)
        # Stable, so the dominance order is kept within each day.
        records.sort(key=lambda r: r.day_key)
        return records

    def query_by_day(self, day_key: str) -> list[Record]:
        return self.query_range([day_key])

    def day_keys(self) -> list[str]:
        keys: set[str] = set()
        for log in self._logs():
            keys.update(log.day_keys())
        return sorted(keys)

    def recent_day_keys(self, count: int = 7) -> list[str]:
        """The ``count`` most recent days holding records, newest first."""
        if count < 1:
            return []
        return sorted(self.day_keys(), reverse=True)[:count]

    def summarize_days(self, day_keys: Iterable[str] | None = None) -> list[DaySummary]:
        """Per-day totals and classification progress, newest day first."""
        wanted = sorted(set(day_keys) if day_keys is not None else self.day_keys(), reverse=True)
        summaries = {day_key: DaySummary(day_key=day_key) for day_key in wanted}
        for record in self.query_range(wanted):
            summary = summaries[record.day_key]
            summary.total += 1
            summary.total_views += record.view_count
            if record.status is RecordStatus.CLASSIFIED:
                summary.classified += 1
            elif record.status is RecordStatus.PENDING:
                summary.pending += 1
            else:
                summary.unclassified += 1
        return [summaries[day_key] for day_key in wanted]

    # Deletion

    def delete_by_ids(self, ids: Iterable[UUID | str]) -> int:
        """Delete records by surrogate id from the primary store."""
        parsed = [value if isinstance(value, UUID) else UUID(str(value)) for value in ids]
        deleted = self.store.delete_by_ids(parsed)
        logger.info("records_deleted_by_id", requested=len(parsed), deleted=deleted)
        return deleted

    def delete_by_day_before(self, cutoff_day_key: str) -> int:
        """Delete every partition strictly before ``cutoff_day_key``.

        Raises:
            RetentionConflict: The cutoff is malformed or after local today.
        """
        return self.sweeper.delete_before(cutoff_day_key)

    def sweep(self, retention_days: int | None = None) -> SweepResult:
        return self.sweeper.sweep(retention_days)

    # Sync

    def push(self, raw_batch: Iterable[Any], deadline: Deadline | None = None) -> MergeReport:
        """Merge a batch of local changes sent by a producer.

        Items may be ``Record`` objects or raw wire dicts.
        """
        items = list(raw_batch)
        if all(isinstance(item, Record) for item in items):
            return self.sync.push(items, deadline=deadline)
        batch = self.normalizer.normalize_batch(
            item.to_dict() if isinstance(item, Record) else item for item in items
        )
        return batch.combine(self.sync.push(batch.records, deadline=deadline))

    def pull(self, since: datetime | None = None, deadline: Deadline | None = None) -> SyncSnapshot:
        return self.sync.pull(since, deadline=deadline)

    def has_changes(self, since: datetime | None = None) -> bool:
        return self.sync.has_changes(since)

    def restore_idempotent(self, snapshot: Iterable[Any], deadline: Deadline | None = None) -> RestoreReport:
        return self.sync.restore_idempotent(snapshot, deadline=deadline)

    def export_snapshot(self) -> list[Record]:
        return self.sync.export_snapshot()

    def health_check(self) -> bool:
        return self.store.health_check()


def build_engine(store: PartitionStore | None = None, clock: Clock | None = None) -> ReconciliationEngine:
    """Build an engine from settings: SQL store, system clock, configured zone."""
    if store is None:
        from pulse_sync.adapters.store.sql import SqlPartitionStore

        store = SqlPartitionStore()
    return ReconciliationEngine(store=store, clock=clock or SystemClock(), timezone=settings.day_key_timezone)


@lru_cache
def get_engine() -> ReconciliationEngine:
    """Get the process-wide engine used by the API, workers and CLI."""
    return build_engine()
