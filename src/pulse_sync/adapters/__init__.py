"""Adapters for external services."""

from pulse_sync.adapters.leases.base import LeaseBackend
from pulse_sync.adapters.remote.http import RemoteSyncClient
from pulse_sync.adapters.store.base import PartitionStore

__all__ = [
    "LeaseBackend",
    "PartitionStore",
    "RemoteSyncClient",
]
