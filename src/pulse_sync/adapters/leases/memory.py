"""Process-local lease backend."""

import secrets
import threading
from datetime import timedelta

from pulse_sync.adapters.leases.base import Lease, LeaseBackend
from pulse_sync.domain.enums import CollectionType
from pulse_sync.utils.clock import Clock, SystemClock


class InMemoryLeaseBackend(LeaseBackend):
    """Leases held in a dict; expiry follows the injected clock."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._leases: dict[CollectionType, Lease] = {}
        self._lock = threading.Lock()

    def _live(self, collection_type: CollectionType) -> Lease | None:
        lease = self._leases.get(collection_type)
        if lease is not None and lease.expires_at <= self.clock.now():
            del self._leases[collection_type]
            return None
        return lease

    def acquire(self, collection_type: CollectionType, holder: str, ttl_seconds: float) -> Lease | None:
        collection_type = CollectionType(collection_type)
        with self._lock:
            if self._live(collection_type) is not None:
                return None
            lease = Lease(
                collection_type=collection_type,
                holder=holder,
                token=secrets.token_hex(16),
                expires_at=self.clock.now() + timedelta(seconds=ttl_seconds),
            )
            self._leases[collection_type] = lease
            return lease

    def renew(self, lease: Lease, ttl_seconds: float) -> Lease | None:
        with self._lock:
            live = self._live(lease.collection_type)
            if live is None or live.token != lease.token:
                return None
            renewed = Lease(
                collection_type=lease.collection_type,
                holder=lease.holder,
                token=lease.token,
                expires_at=self.clock.now() + timedelta(seconds=ttl_seconds),
            )
            self._leases[lease.collection_type] = renewed
            return renewed

    def release(self, lease: Lease) -> bool:
        with self._lock:
            live = self._live(lease.collection_type)
            if live is None or live.token != lease.token:
                return False
            del self._leases[lease.collection_type]
            return True

    def current(self, collection_type: CollectionType) -> Lease | None:
        with self._lock:
            return self._live(CollectionType(collection_type))
