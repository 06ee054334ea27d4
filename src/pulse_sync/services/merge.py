"""Batch merge engine.

Groups an incoming batch by day key, loads only the affected partitions and
hands the effective changes to the store, which applies ``MERGE_POLICY`` as
one atomic read-modify-write per key.
"""

from collections import defaultdict
from collections.abc import Sequence

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.config import settings
from pulse_sync.domain.enums import RejectionReason, UpsertOutcome
from pulse_sync.domain.models import MergeReport, Record, RejectedItem, content_equal
from pulse_sync.domain.policy import merge_records
from pulse_sync.logging import get_logger
from pulse_sync.services.day_keys import is_day_key
from pulse_sync.utils.clock import Clock
from pulse_sync.utils.deadline import Deadline

logger = get_logger(__name__)


def _check(record: Record) -> tuple[RejectionReason, str] | None:
    if not isinstance(record.video_id, str) or not record.video_id:
        return RejectionReason.MISSING_VIDEO_ID, "videoId must not be empty"
    if not is_day_key(record.day_key):
        return RejectionReason.INVALID_DAY_KEY, f"invalid day key: {record.day_key!r}"
    for name in ("view_count", "like_count", "comment_count"):
        value = getattr(record, name)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            return RejectionReason.INVALID_METRIC, f"{name} must be a non-negative integer"
    return None


class MergeEngine:
    """Merges batches of records into a partition store."""

    def __init__(self, store: PartitionStore, clock: Clock, max_write_seconds: float | None = None) -> None:
        self.store = store
        self.clock = clock
        self.max_write_seconds = max_write_seconds or settings.sync_max_write_seconds

    def merge_batch(
        self,
        incoming: Sequence[Record],
        deadline: Deadline | None = None,
    ) -> MergeReport:
        """Merge a batch of records.

        Only the partitions the batch touches are loaded. Records whose merge
        would not change the stored row are not written at all, so applying
        a batch a second time bumps no version and no timestamp.

        The write never runs longer than ``max_write_seconds``, whatever
        ``deadline`` says; pull cursors rely on that bound.

        Raises:
            StoreUnavailable: The store could not be reached; nothing was committed.
            DeadlineExceeded: The deadline passed; nothing was committed.
        """
        report = MergeReport()
        if deadline is None:
            deadline = Deadline.from_timeout(self.max_write_seconds)
        else:
            deadline = deadline.capped(self.max_write_seconds)

        # Fold in-batch duplicates so each key is written once.
        folded: dict[tuple[str, str], Record] = {}
        for index, record in enumerate(incoming):
            problem = _check(record)
            if problem is not None:
                reason, detail = problem
                report.rejected.append(
                    RejectedItem(index=index, reason=reason, detail=detail, video_id=record.video_id or None)
                )
                continue
            previous = folded.get(record.key)
            folded[record.key] = record if previous is None else merge_records(previous, record)

        by_day: dict[str, list[Record]] = defaultdict(list)
        for record in folded.values():
            by_day[record.day_key].append(record)
        report.day_keys = sorted(by_day)

        if not folded:
            return report

        deadline.check("merge_batch")

        partitions = self.store.get_partitions(report.day_keys)
        stored = {record.key: record for rows in partitions.values() for record in rows}

        changes: list[Record] = []
        for key, record in folded.items():
            existing = stored.get(key)
            if existing is not None and content_equal(merge_records(existing, record), existing):
                report.unchanged += 1
                continue
            changes.append(record)

        # A stable key order keeps concurrent batches from locking rows in
        # opposite orders.
        changes.sort(key=lambda r: (r.day_key, r.video_id))
        results = self.store.upsert_many(changes, now=self.clock.now(), deadline=deadline)

        for result in results:
            if result.outcome is UpsertOutcome.INSERTED:
                report.inserted += 1
            elif result.outcome is UpsertOutcome.UPDATED:
                report.updated += 1
            else:
                report.unchanged += 1

        logger.info(
            "merge_batch_completed",
            inserted=report.inserted,
            updated=report.updated,
            unchanged=report.unchanged,
            rejected=len(report.rejected),
            day_keys=report.day_keys,
        )
        return report
