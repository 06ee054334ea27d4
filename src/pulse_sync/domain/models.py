"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4, uuid5

from pulse_sync.domain.enums import CollectionType, RecordStatus, RejectionReason, UpsertOutcome

# Wire (camelCase) name for every Record attribute.
WIRE_NAMES: dict[str, str] = {
    "id": "id",
    "video_id": "videoId",
    "day_key": "dayKeyLocal",
    "channel_id": "channelId",
    "channel_name": "channelName",
    "title": "title",
    "description": "description",
    "thumbnail_url": "thumbnailUrl",
    "view_count": "viewCount",
    "like_count": "likeCount",
    "comment_count": "commentCount",
    "upload_date": "uploadDate",
    "collection_date": "collectionDate",
    "category": "category",
    "sub_category": "subCategory",
    "status": "status",
    "collection_type": "collectionType",
    "keyword": "keyword",
    "source": "source",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "version": "version",
}

# Store-managed attributes, excluded from content comparison.
BOOKKEEPING_FIELDS = frozenset({"id", "created_at", "updated_at", "version"})

RECORD_ID_NAMESPACE = UUID("6f1c2a9e-4b7d-5e3a-9c1f-2d8b7a6e5f40")


def record_id(video_id: str, day_key: str) -> UUID:
    """Stable surrogate id of the row holding ``(video_id, day_key)``.

    Stores assign it on insert and ignore any id a producer sends, so ids
    never collide across keys and survive export and restore unchanged.
    """
    return uuid5(RECORD_ID_NAMESPACE, f"{video_id}|{day_key}")


@dataclass
class Record:
    """One observation of one video on one local day.

    ``(video_id, day_key)`` is the primary key: the store holds at most one
    record per pair.
    """

    video_id: str
    day_key: str
    channel_id: str | None = None
    channel_name: str | None = None
    title: str | None = None
    description: str | None = None
    thumbnail_url: str | None = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    upload_date: datetime | None = None
    collection_date: datetime | None = None
    category: str | None = None
    sub_category: str | None = None
    status: RecordStatus = RecordStatus.UNCLASSIFIED
    collection_type: CollectionType | None = CollectionType.MANUAL
    keyword: str | None = None
    source: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> tuple[str, str]:
        """The ``(video_id, day_key)`` primary key."""
        return (self.video_id, self.day_key)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire form used by the API and backups."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, UUID):
                value = str(value)
            data[WIRE_NAMES[f.name]] = value
        return data


CONTENT_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(Record) if f.name not in BOOKKEEPING_FIELDS
)


def content_equal(a: Record, b: Record) -> bool:
    """Whether two records carry the same content, ignoring bookkeeping."""
    return all(getattr(a, name) == getattr(b, name) for name in CONTENT_FIELDS)


@dataclass
class RejectedItem:
    """A batch item that failed validation."""

    index: int
    reason: RejectionReason
    detail: str
    video_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "reason": str(self.reason),
            "detail": self.detail,
            "videoId": self.video_id,
        }


@dataclass
class UpsertResult:
    """Outcome of one keyed upsert."""

    outcome: UpsertOutcome
    record: Record


@dataclass
class MergeReport:
    """Result of merging one batch into the store."""

    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    rejected: list[RejectedItem] = field(default_factory=list)
    day_keys: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> int:
        return self.inserted + self.updated + self.unchanged

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "accepted": self.accepted,
            "rejectedCount": len(self.rejected),
            "rejected": [item.to_dict() for item in self.rejected],
            "dayKeys": list(self.day_keys),
        }


@dataclass
class RestoreReport:
    """Result of restoring a backup snapshot."""

    snapshot_size: int
    merge: MergeReport

    @property
    def restored(self) -> int:
        """Records that actually changed the store."""
        return self.merge.inserted + self.merge.updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshotSize": self.snapshot_size,
            "restored": self.restored,
            **self.merge.to_dict(),
        }


@dataclass
class DaySummary:
    """Per-day collection progress."""

    day_key: str
    total: int = 0
    classified: int = 0
    pending: int = 0
    unclassified: int = 0
    total_views: int = 0

    @property
    def progress(self) -> float:
        """Share of records already classified, 0.0-1.0."""
        return self.classified / self.total if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "dayKey": self.day_key,
            "total": self.total,
            "classified": self.classified,
            "pending": self.pending,
            "unclassified": self.unclassified,
            "totalViews": self.total_views,
            "progress": round(self.progress, 4),
        }


@dataclass
class SweepResult:
    """Result of one retention sweep."""

    cutoff: str
    retention_days: int
    deleted: int


@dataclass
class SyncSnapshot:
    """Records changed since a point in time, plus the time to resume from."""

    records: list[Record]
    sync_time: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": [record.to_dict() for record in self.records],
            "count": len(self.records),
            "syncTime": self.sync_time.isoformat(),
        }
