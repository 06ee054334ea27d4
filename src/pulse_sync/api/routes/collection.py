"""Collection lease endpoints.

Producers take the lease for their collection type before a run and
release it when done, so an automated and a manual run of the same type
never overlap.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import Field

from pulse_sync.adapters.leases.base import Lease
from pulse_sync.api.deps import LeaseBackendDep
from pulse_sync.api.routes.schemas import WireModel
from pulse_sync.config import settings
from pulse_sync.domain.enums import CollectionType
from pulse_sync.domain.errors import LeaseUnavailable
from pulse_sync.logging import get_logger

router = APIRouter(prefix="/collection/leases", tags=["Collection"])
logger = get_logger(__name__)


class AcquireLeaseRequest(WireModel):
    holder: str = Field(..., min_length=1)
    ttl_seconds: float | None = Field(None, gt=0)


class LeaseTokenRequest(WireModel):
    holder: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    ttl_seconds: float | None = Field(None, gt=0)


class LeaseResponse(WireModel):
    collection_type: CollectionType
    holder: str
    expires_at: datetime
    token: str | None = None


class LeaseStatusResponse(WireModel):
    collection_type: CollectionType
    held: bool
    lease: LeaseResponse | None = None


def _lease(collection_type: CollectionType, request: LeaseTokenRequest) -> Lease:
    return Lease(
        collection_type=collection_type,
        holder=request.holder,
        token=request.token,
        expires_at=datetime.now(UTC),
    )


@router.get("/{collection_type}", response_model=LeaseStatusResponse, summary="Lease status")
def lease_status(collection_type: CollectionType, backend: LeaseBackendDep) -> LeaseStatusResponse:
    current = backend.current(collection_type)
    return LeaseStatusResponse(
        collection_type=collection_type,
        held=current is not None,
        lease=(
            LeaseResponse(
                collection_type=current.collection_type,
                holder=current.holder,
                expires_at=current.expires_at,
            )
            if current
            else None
        ),
    )


@router.post(
    "/{collection_type}/acquire",
    response_model=LeaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Acquire lease",
)
def acquire_lease(
    collection_type: CollectionType,
    request: AcquireLeaseRequest,
    backend: LeaseBackendDep,
) -> LeaseResponse:
    ttl = request.ttl_seconds or settings.lease_ttl_seconds
    lease = backend.acquire(collection_type, request.holder, ttl)
    if lease is None:
        current = backend.current(collection_type)
        raise LeaseUnavailable(str(collection_type), current.holder if current else None)
    logger.info("lease_acquired", collection_type=str(collection_type), holder=request.holder)
    return LeaseResponse(
        collection_type=lease.collection_type,
        holder=lease.holder,
        expires_at=lease.expires_at,
        token=lease.token,
    )


@router.post("/{collection_type}/renew", response_model=LeaseResponse, summary="Renew lease")
def renew_lease(
    collection_type: CollectionType,
    request: LeaseTokenRequest,
    backend: LeaseBackendDep,
) -> LeaseResponse:
    ttl = request.ttl_seconds or settings.lease_ttl_seconds
    renewed = backend.renew(_lease(collection_type, request), ttl)
    if renewed is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Lease is not held by this token")
    return LeaseResponse(
        collection_type=renewed.collection_type,
        holder=renewed.holder,
        expires_at=renewed.expires_at,
        token=renewed.token,
    )


@router.post("/{collection_type}/release", summary="Release lease")
def release_lease(
    collection_type: CollectionType,
    request: LeaseTokenRequest,
    backend: LeaseBackendDep,
) -> dict[str, bool]:
    released = backend.release(_lease(collection_type, request))
    logger.info("lease_release_requested", collection_type=str(collection_type), released=released)
    return {"released": released}
