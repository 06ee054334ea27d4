"""Celery tasks for retention sweeping."""

from typing import Any

from celery.signals import worker_ready

from pulse_sync.config import settings
from pulse_sync.logging import get_logger
from pulse_sync.services.engine import get_engine
from pulse_sync.worker import celery_app

logger = get_logger(__name__)


@celery_app.task(bind=True, name="retention.sweep")
def retention_sweep_task(self: Any, retention_days: int | None = None) -> dict[str, Any]:
    """Delete day partitions older than the retention horizon.

    Only partitions strictly before ``today - retention_days`` are touched,
    so this can run while ingestion for today is in progress.
    """
    task_id = self.request.id
    result = get_engine().sweep(retention_days)
    logger.info(
        "retention_sweep_task_completed",
        task_id=task_id,
        cutoff=result.cutoff,
        deleted=result.deleted,
    )
    return {
        "success": True,
        "task_id": task_id,
        "cutoff": result.cutoff,
        "retention_days": result.retention_days,
        "deleted": result.deleted,
    }


@worker_ready.connect
def sweep_on_worker_ready(sender: Any = None, **kwargs: Any) -> None:
    """Run one sweep when a worker starts, so a missed midnight is caught up."""
    if not settings.sweep_on_startup:
        return
    logger.info("retention_sweep_on_startup")
    retention_sweep_task.apply_async(queue="low")
