"""Celery job definitions."""

from pulse_sync.jobs.ingestion_tasks import ingest_records_task
from pulse_sync.jobs.retention_tasks import retention_sweep_task

__all__ = [
    "ingest_records_task",
    "retention_sweep_task",
]
