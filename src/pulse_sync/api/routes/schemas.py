"""Request and response models shared by the API routes.

Everything on the wire is camelCase, matching the record wire form used by
producers and backups.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecordBatchRequest(WireModel):
    """A batch of raw records; invalid items are reported, not rejected wholesale."""

    records: list[Any] = Field(..., description="Raw records in wire form")


class RejectedItemResponse(WireModel):
    index: int
    reason: str
    detail: str
    video_id: str | None = None


class MergeReportResponse(WireModel):
    """Outcome of merging one batch."""

    inserted: int
    updated: int
    unchanged: int
    accepted: int
    rejected_count: int
    rejected: list[RejectedItemResponse]
    day_keys: list[str]


class RestoreReportResponse(MergeReportResponse):
    snapshot_size: int
    restored: int


class RecordsResponse(WireModel):
    day_keys: list[str]
    count: int
    records: list[dict[str, Any]]


class SyncSnapshotResponse(WireModel):
    records: list[dict[str, Any]]
    count: int
    sync_time: datetime


class DaySummaryResponse(WireModel):
    day_key: str
    total: int
    classified: int
    pending: int
    unclassified: int
    total_views: int
    progress: float


class DeletedResponse(WireModel):
    deleted: int
