"""Domain enumerations."""

from enum import StrEnum


class RecordStatus(StrEnum):
    """Classification state of a record.

    Members are declared in authority order; see ``STATUS_RANK``.
    """

    UNCLASSIFIED = "unclassified"
    PENDING = "pending"
    CLASSIFIED = "classified"


STATUS_RANK: dict[RecordStatus, int] = {
    RecordStatus.UNCLASSIFIED: 0,
    RecordStatus.PENDING: 1,
    RecordStatus.CLASSIFIED: 2,
}


class CollectionType(StrEnum):
    """How an observation was collected."""

    MANUAL = "manual"
    AUTO = "auto"


class RejectionReason(StrEnum):
    """Reason codes attached to rejected batch items."""

    NOT_AN_OBJECT = "not_an_object"
    MISSING_VIDEO_ID = "missing_video_id"
    INVALID_METRIC = "invalid_metric"
    INVALID_STATUS = "invalid_status"
    INVALID_COLLECTION_TYPE = "invalid_collection_type"
    MISSING_TIMESTAMP = "missing_timestamp"
    INVALID_TIMESTAMP = "invalid_timestamp"
    INVALID_DAY_KEY = "invalid_day_key"
    INVALID_FIELD = "invalid_field"


class UpsertOutcome(StrEnum):
    """What a single keyed upsert did to the store."""

    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class MergeRule(StrEnum):
    """Conflict-resolution rule applied to one field on a key collision."""

    MONOTONIC_MAX = "monotonic_max"  # max(existing, incoming)
    OVERWRITE = "overwrite"  # incoming always wins
    CLASSIFICATION = "classification"  # incoming wins if present and its status rank >= existing
    PREFER_INCOMING = "prefer_incoming"  # incoming wins unless missing
    KEEP_EXISTING = "keep_existing"  # existing wins unless missing
