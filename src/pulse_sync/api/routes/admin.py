"""Admin endpoints for retention management."""

from fastapi import APIRouter
from pydantic import Field

from pulse_sync.api.deps import EngineDep
from pulse_sync.api.routes.schemas import DeletedResponse, WireModel
from pulse_sync.logging import get_logger

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger(__name__)


class SweepRequest(WireModel):
    retention_days: int | None = Field(None, description="Override the configured retention")


class SweepResponse(WireModel):
    cutoff: str
    retention_days: int
    deleted: int


class DeleteBeforeRequest(WireModel):
    cutoff: str = Field(..., description="First day key to keep (YYYY-MM-DD)")


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Run retention sweep",
    description="Delete every day partition older than the retention horizon.",
)
def run_sweep(engine: EngineDep, request: SweepRequest | None = None) -> SweepResponse:
    retention_days = request.retention_days if request else None
    result = engine.sweep(retention_days)
    logger.info("admin_sweep", cutoff=result.cutoff, deleted=result.deleted)
    return SweepResponse(cutoff=result.cutoff, retention_days=result.retention_days, deleted=result.deleted)


@router.post(
    "/delete-before",
    response_model=DeletedResponse,
    summary="Delete days before a cutoff",
    description="Delete every day partition strictly before `cutoff`.",
)
def delete_before(request: DeleteBeforeRequest, engine: EngineDep) -> DeletedResponse:
    deleted = engine.delete_by_day_before(request.cutoff)
    logger.info("admin_delete_before", cutoff=request.cutoff, deleted=deleted)
    return DeletedResponse(deleted=deleted)
