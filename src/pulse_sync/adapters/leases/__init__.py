"""Collection lease adapters."""

from functools import lru_cache

from pulse_sync.adapters.leases.base import Lease, LeaseBackend, hold_lease
from pulse_sync.adapters.leases.memory import InMemoryLeaseBackend
from pulse_sync.adapters.leases.redis_lease import RedisLeaseBackend


@lru_cache
def get_lease_backend() -> LeaseBackend:
    """Get the shared collection lease backend (Redis)."""
    return RedisLeaseBackend()


__all__ = [
    "Lease",
    "LeaseBackend",
    "InMemoryLeaseBackend",
    "RedisLeaseBackend",
    "get_lease_backend",
    "hold_lease",
]
