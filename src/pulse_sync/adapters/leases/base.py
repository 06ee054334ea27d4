"""Base interface for collection leases.

A lease is a time-bounded mutual-exclusion token scoped to one collection
type. Whichever ingestion path runs (automated harvester, manual collector)
acquires the lease for its type, and it is released on completion or simply
expires if the holder dies.
"""

from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pulse_sync.domain.enums import CollectionType
from pulse_sync.domain.errors import LeaseUnavailable
from pulse_sync.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Lease:
    """A held lease. ``token`` proves ownership on renew and release."""

    collection_type: CollectionType
    holder: str
    token: str
    expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "collectionType": str(self.collection_type),
            "holder": self.holder,
            "expiresAt": self.expires_at.isoformat(),
        }


class LeaseBackend(ABC):
    """Storage for collection leases.

    Implementations:
    - RedisLeaseBackend: shared across processes and hosts
    - InMemoryLeaseBackend: process-local, clock-driven (tests, single process)
    """

    @abstractmethod
    def acquire(self, collection_type: CollectionType, holder: str, ttl_seconds: float) -> Lease | None:
        """Take the lease if nobody holds it.

        Returns:
            The new lease, or None if another holder has an unexpired lease.
        """
        ...

    @abstractmethod
    def renew(self, lease: Lease, ttl_seconds: float) -> Lease | None:
        """Extend a lease still owned by its token; None if it was lost."""
        ...

    @abstractmethod
    def release(self, lease: Lease) -> bool:
        """Release a lease still owned by its token."""
        ...

    @abstractmethod
    def current(self, collection_type: CollectionType) -> Lease | None:
        """The unexpired lease for a collection type, if any."""
        ...


@contextmanager
def hold_lease(
    backend: LeaseBackend,
    collection_type: CollectionType,
    holder: str,
    ttl_seconds: float,
) -> Generator[Lease, None, None]:
    """Hold the lease for the duration of a block.

    Raises:
        LeaseUnavailable: Another holder owns the lease.
    """
    lease = backend.acquire(collection_type, holder, ttl_seconds)
    if lease is None:
        current = backend.current(collection_type)
        raise LeaseUnavailable(str(collection_type), current.holder if current else None)

    logger.info("lease_acquired", collection_type=str(collection_type), holder=holder)
    try:
        yield lease
    finally:
        released = backend.release(lease)
        if not released:
            logger.warning("lease_lost_before_release", collection_type=str(collection_type), holder=holder)
        else:
            logger.info("lease_released", collection_type=str(collection_type), holder=holder)
