"""Application services."""

from pulse_sync.services.day_keys import DayKeyResolver, is_day_key
from pulse_sync.services.dedupe import dedupe
from pulse_sync.services.engine import ReconciliationEngine, build_engine, get_engine
from pulse_sync.services.merge import MergeEngine
from pulse_sync.services.normalizer import NormalizedBatch, RecordNormalizer
from pulse_sync.services.retention import RetentionSweeper
from pulse_sync.services.sync import SyncCoordinator

__all__ = [
    "DayKeyResolver",
    "MergeEngine",
    "NormalizedBatch",
    "ReconciliationEngine",
    "RecordNormalizer",
    "RetentionSweeper",
    "SyncCoordinator",
    "build_engine",
    "get_engine",
    "dedupe",
    "is_day_key",
]
