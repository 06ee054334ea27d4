"""Record ingestion, query and deletion endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import Field

from pulse_sync.api.deps import EngineDep
from pulse_sync.api.routes.schemas import (
    DaySummaryResponse,
    DeletedResponse,
    MergeReportResponse,
    RecordBatchRequest,
    RecordsResponse,
    WireModel,
)
from pulse_sync.config import settings
from pulse_sync.logging import get_logger
from pulse_sync.utils.deadline import Deadline

router = APIRouter(prefix="/records", tags=["Records"])
logger = get_logger(__name__)


class DeleteByIdsRequest(WireModel):
    ids: list[UUID] = Field(..., description="Record ids to delete")


def _split_days(days: str) -> list[str]:
    return [d.strip() for d in days.split(",") if d.strip()]


@router.post(
    "/ingest",
    response_model=MergeReportResponse,
    summary="Ingest records",
    description="Normalize raw records and merge them into their day partitions.",
)
def ingest_records(
    request: RecordBatchRequest,
    engine: EngineDep,
    timeout_seconds: float | None = Query(None, gt=0, description="Deadline for the whole batch"),
) -> MergeReportResponse:
    """Normalize and merge a batch of raw records."""
    deadline = Deadline.from_timeout(timeout_seconds or settings.sync_default_timeout_seconds)
    report = engine.normalize_and_merge(request.records, deadline=deadline)
    return MergeReportResponse.model_validate(report.to_dict())


@router.get(
    "",
    response_model=RecordsResponse,
    summary="Query days",
    description="Deduplicated records of one or more days.",
)
def query_range(
    engine: EngineDep,
    days: str = Query(..., description="Comma-separated day keys (YYYY-MM-DD)"),
) -> RecordsResponse:
    day_keys = _split_days(days)
    try:
        records = engine.query_range(day_keys)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RecordsResponse(
        day_keys=sorted(set(day_keys)),
        count=len(records),
        records=[record.to_dict() for record in records],
    )


@router.get(
    "/days",
    response_model=list[str],
    summary="Recent days",
    description="Most recent day keys holding records, newest first.",
)
def recent_days(
    engine: EngineDep,
    count: int = Query(7, ge=1, le=366, description="Number of days"),
) -> list[str]:
    return engine.recent_day_keys(count)


@router.get(
    "/summary",
    response_model=list[DaySummaryResponse],
    summary="Day summaries",
    description="Per-day totals and classification progress.",
)
def summarize_days(
    engine: EngineDep,
    days: str | None = Query(None, description="Comma-separated day keys; default is the most recent days"),
    count: int = Query(7, ge=1, le=366, description="Number of recent days when `days` is omitted"),
) -> list[DaySummaryResponse]:
    day_keys = _split_days(days) if days else engine.recent_day_keys(count)
    try:
        summaries = engine.summarize_days(day_keys)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [DaySummaryResponse.model_validate(s.to_dict()) for s in summaries]


@router.get(
    "/{day_key}",
    response_model=RecordsResponse,
    summary="Query one day",
    description="Deduplicated records of one day.",
)
def query_by_day(day_key: str, engine: EngineDep) -> RecordsResponse:
    try:
        records = engine.query_by_day(day_key)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RecordsResponse(
        day_keys=[day_key],
        count=len(records),
        records=[record.to_dict() for record in records],
    )


@router.post(
    "/delete",
    response_model=DeletedResponse,
    summary="Delete records",
    description="Delete records by id.",
)
def delete_records(request: DeleteByIdsRequest, engine: EngineDep) -> DeletedResponse:
    deleted = engine.delete_by_ids(request.ids)
    return DeletedResponse(deleted=deleted)
