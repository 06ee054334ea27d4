"""Partition store adapters."""

from pulse_sync.adapters.store.base import PartitionStore
from pulse_sync.adapters.store.memory import InMemoryPartitionStore
from pulse_sync.adapters.store.sql import SqlPartitionStore

__all__ = ["InMemoryPartitionStore", "PartitionStore", "SqlPartitionStore"]
