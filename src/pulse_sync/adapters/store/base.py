"""Base interface for partition stores."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import datetime
from uuid import UUID

from pulse_sync.domain.models import Record, UpsertResult
from pulse_sync.utils.deadline import Deadline


class PartitionStore(ABC):
    """Persistence for records keyed by ``(video_id, day_key)``.

    A partition is the set of records sharing one day key. Every write is
    keyed, so an operation on day D never touches a record of another day.

    Implementations:
    - InMemoryPartitionStore: process-local dict (offline cache, tests)
    - SqlPartitionStore: SQLAlchemy table with a server-side conditional upsert
    """

    @abstractmethod
    def get_partitions(self, day_keys: Iterable[str]) -> dict[str, list[Record]]:
        """Load the given partitions, and only those.

        Args:
            day_keys: Day keys to load.

        Returns:
            Mapping of day key to its records; days without records map to
            an empty list.
        """
        ...

    def get_partition(self, day_key: str) -> list[Record]:
        """Load a single partition."""
        return self.get_partitions([day_key]).get(day_key, [])

    @abstractmethod
    def get(self, video_id: str, day_key: str) -> Record | None:
        """Fetch one record by its primary key."""
        ...

    @abstractmethod
    def upsert_many(
        self,
        records: Sequence[Record],
        now: datetime,
        deadline: Deadline | None = None,
    ) -> list[UpsertResult]:
        """Insert or merge each record into its key.

        New rows get ``record_id(video_id, day_key)`` as their id; the
        incoming ``id`` is never written. Each key is merged with
        ``MERGE_POLICY`` as a single atomic read-modify-write. The batch
        commits all-or-nothing: if the backend fails or the deadline passes,
        no record of the batch is kept.

        Args:
            records: Records to write, at most one per key.
            now: Merge time, stamped into ``updated_at``.
            deadline: Optional caller deadline, checked between rows.

        Returns:
            One ``UpsertResult`` per record, in input order.

        Raises:
            StoreUnavailable: The backend could not be reached.
            DeadlineExceeded: The deadline passed before commit.
        """
        ...

    @abstractmethod
    def changed_since(self, since: datetime | None) -> list[Record]:
        """Records with ``updated_at`` strictly after ``since``, oldest first.

        ``since=None`` returns every record.
        """
        ...

    @abstractmethod
    def has_changes_since(self, since: datetime | None) -> bool:
        """Cheap existence check for ``changed_since``."""
        ...

    @abstractmethod
    def delete_by_ids(self, ids: Iterable[UUID]) -> int:
        """Delete records by surrogate id; returns the number deleted."""
        ...

    @abstractmethod
    def delete_before(self, cutoff_day_key: str) -> int:
        """Delete every partition whose day key is strictly before the cutoff."""
        ...

    @abstractmethod
    def day_keys(self) -> list[str]:
        """Day keys that currently hold records, ascending."""
        ...

    def health_check(self) -> bool:
        """Check if the backend is reachable."""
        return True
