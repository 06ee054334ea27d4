"""Sync coordination between producers and the authoritative store.

``push`` and ``restore_idempotent`` both go through the merge engine, so the
store is only ever merged into, never replaced. ``pull`` returns records
changed after a point in time together with the instant to resume from.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.config import settings
from pulse_sync.domain.models import MergeReport, Record, RestoreReport, SyncSnapshot
from pulse_sync.logging import get_logger
from pulse_sync.services.merge import MergeEngine
from pulse_sync.services.normalizer import RecordNormalizer
from pulse_sync.utils.clock import Clock
from pulse_sync.utils.deadline import Deadline

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _since(value: datetime | None) -> datetime | None:
    """``None`` and the epoch both mean "everything"."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return None if value <= EPOCH else value


class SyncCoordinator:
    """Push, pull and restore on top of the merge engine."""

    def __init__(
        self,
        store: PartitionStore,
        merge_engine: MergeEngine,
        normalizer: RecordNormalizer,
        clock: Clock,
        overlap: timedelta | None = None,
    ) -> None:
        self.store = store
        self.merge_engine = merge_engine
        self.normalizer = normalizer
        self.clock = clock
        self.overlap = overlap if overlap is not None else timedelta(seconds=settings.sync_pull_overlap_seconds)

    def push(self, records: Sequence[Record], deadline: Deadline | None = None) -> MergeReport:
        """Merge local changes into the store.

        The whole batch commits or nothing does. On ``StoreUnavailable`` or
        ``DeadlineExceeded`` the caller keeps its local changes and retries
        later; re-pushing already applied records is harmless.
        """
        report = self.merge_engine.merge_batch(records, deadline=deadline)
        logger.info("sync_push", records=len(records), accepted=report.accepted)
        return report

    def pull(self, since: datetime | None = None, deadline: Deadline | None = None) -> SyncSnapshot:
        """Records with ``updated_at`` after ``since``.

        Rows are stamped when their merge starts but become visible when it
        commits. ``sync_time`` is therefore set back by ``overlap``, which is
        at least the longest a merge may run, so a write that commits after
        this scan is returned by the next pull. Consecutive pulls overlap;
        re-applying the repeated records is a no-op merge.
        """
        sync_time = self.clock.now() - self.overlap
        records = self.store.changed_since(_since(since))
        if deadline is not None:
            deadline.check("pull")
        logger.info("sync_pull", since=since.isoformat() if since else None, records=len(records))
        return SyncSnapshot(records=records, sync_time=sync_time)

    def has_changes(self, since: datetime | None = None) -> bool:
        return self.store.has_changes_since(_since(since))

    def restore_idempotent(
        self,
        snapshot: Iterable[Any],
        deadline: Deadline | None = None,
    ) -> RestoreReport:
        """Load a backup snapshot through the same path as ``push``.

        Snapshot items are raw wire dicts (or ``Record`` objects). Restoring
        the same snapshot again leaves the store unchanged, including
        ``version`` and ``updated_at``.
        """
        items = [item.to_dict() if isinstance(item, Record) else item for item in snapshot]
        batch = self.normalizer.normalize_batch(items)
        merge = batch.combine(self.merge_engine.merge_batch(batch.records, deadline=deadline))
        report = RestoreReport(snapshot_size=len(items), merge=merge)
        logger.info(
            "sync_restore_completed",
            snapshot_size=report.snapshot_size,
            restored=report.restored,
            unchanged=merge.unchanged,
            rejected=len(merge.rejected),
        )
        return report

    def export_snapshot(self) -> list[Record]:
        """Every stored record, for backup download."""
        records = self.store.changed_since(None)
        records.sort(key=lambda r: (r.day_key, r.video_id))
        return records
