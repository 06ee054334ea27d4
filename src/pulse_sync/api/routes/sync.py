"""Sync endpoints: push, pull, change checks, backup and restore."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Query

from pulse_sync.api.deps import EngineDep
from pulse_sync.api.routes.schemas import (
    MergeReportResponse,
    RecordBatchRequest,
    RestoreReportResponse,
    SyncSnapshotResponse,
    WireModel,
)
from pulse_sync.config import settings
from pulse_sync.logging import get_logger
from pulse_sync.utils.deadline import Deadline

router = APIRouter(prefix="/sync", tags=["Sync"])
logger = get_logger(__name__)


class HasChangesResponse(WireModel):
    has_changes: bool


class BackupResponse(WireModel):
    records: list[dict[str, Any]]
    count: int
    exported_at: datetime


def _deadline(timeout_seconds: float | None) -> Deadline:
    return Deadline.from_timeout(timeout_seconds or settings.sync_default_timeout_seconds)


@router.post(
    "/push",
    response_model=MergeReportResponse,
    summary="Push local changes",
    description="Merge a batch of local changes. The batch commits all-or-nothing.",
)
def push(
    request: RecordBatchRequest,
    engine: EngineDep,
    timeout_seconds: float | None = Query(None, gt=0, description="Deadline for the whole batch"),
) -> MergeReportResponse:
    report = engine.push(request.records, deadline=_deadline(timeout_seconds))
    return MergeReportResponse.model_validate(report.to_dict())


@router.get(
    "/pull",
    response_model=SyncSnapshotResponse,
    summary="Pull changes",
    description="Records updated after `since`; omit `since` for a full snapshot.",
)
def pull(
    engine: EngineDep,
    since: datetime | None = Query(None, description="Return records updated after this instant"),
    timeout_seconds: float | None = Query(None, gt=0),
) -> SyncSnapshotResponse:
    snapshot = engine.pull(since, deadline=_deadline(timeout_seconds))
    return SyncSnapshotResponse.model_validate(snapshot.to_dict())


@router.get(
    "/has-changes",
    response_model=HasChangesResponse,
    summary="Check for changes",
    description="Whether any record was updated after `since`.",
)
def has_changes(
    engine: EngineDep,
    since: datetime | None = Query(None),
) -> HasChangesResponse:
    return HasChangesResponse(has_changes=engine.has_changes(since))


@router.get(
    "/backup",
    response_model=BackupResponse,
    summary="Download backup",
    description="Every stored record in wire form.",
)
def backup(engine: EngineDep) -> BackupResponse:
    records = engine.export_snapshot()
    logger.info("backup_exported", count=len(records))
    return BackupResponse(
        records=[record.to_dict() for record in records],
        count=len(records),
        exported_at=datetime.now(UTC),
    )


@router.post(
    "/restore",
    response_model=RestoreReportResponse,
    summary="Restore backup",
    description="Merge a backup snapshot. Restoring the same snapshot again changes nothing.",
)
def restore(
    request: RecordBatchRequest,
    engine: EngineDep,
    timeout_seconds: float | None = Query(None, gt=0),
) -> RestoreReportResponse:
    report = engine.restore_idempotent(request.records, deadline=_deadline(timeout_seconds))
    return RestoreReportResponse.model_validate(report.to_dict())
