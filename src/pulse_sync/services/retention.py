"""Retention sweeping of expired day partitions."""

from datetime import date, timedelta
from zoneinfo import ZoneInfo

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.config import settings
from pulse_sync.domain.errors import RetentionConflict
from pulse_sync.domain.models import SweepResult
from pulse_sync.logging import get_logger
from pulse_sync.services.day_keys import is_day_key
from pulse_sync.utils.clock import Clock

logger = get_logger(__name__)


class RetentionSweeper:
    """Deletes whole partitions older than the retention horizon.

    Sweeping only ever deletes days strictly before ``today - retention``,
    which ingestion of the current day never writes to, so it can run
    alongside ingestion without coordination.
    """

    def __init__(self, store: PartitionStore, clock: Clock, timezone: ZoneInfo) -> None:
        self.store = store
        self.clock = clock
        self.timezone = timezone

    def today(self) -> date:
        return self.clock.today(self.timezone)

    def cutoff(self, retention_days: int) -> str:
        """First day key that is kept: ``today - retention_days``.

        Raises:
            RetentionConflict: ``retention_days`` would reach today's partition.
        """
        if isinstance(retention_days, bool) or not isinstance(retention_days, int) or retention_days < 1:
            raise RetentionConflict(f"retention_days must be a positive integer, got {retention_days!r}")
        return (self.today() - timedelta(days=retention_days)).isoformat()

    def delete_before(self, cutoff_day_key: str) -> int:
        """Delete every partition strictly before ``cutoff_day_key``.

        Raises:
            RetentionConflict: The cutoff is malformed or later than local
                today, which would delete the partition being written.
        """
        if not is_day_key(cutoff_day_key):
            raise RetentionConflict(f"invalid cutoff day key: {cutoff_day_key!r}")
        today = self.today().isoformat()
        if cutoff_day_key > today:
            raise RetentionConflict(
                f"cutoff {cutoff_day_key} is after today ({today}); refusing to delete live partitions"
            )
        deleted = self.store.delete_before(cutoff_day_key)
        logger.info("retention_delete_before", cutoff=cutoff_day_key, deleted=deleted)
        return deleted

    def sweep(self, retention_days: int | None = None) -> SweepResult:
        """Delete partitions older than ``retention_days`` local days."""
        days = retention_days if retention_days is not None else settings.retention_days
        cutoff = self.cutoff(days)
        deleted = self.delete_before(cutoff)
        logger.info("retention_sweep_completed", cutoff=cutoff, retention_days=days, deleted=deleted)
        return SweepResult(cutoff=cutoff, retention_days=days, deleted=deleted)
