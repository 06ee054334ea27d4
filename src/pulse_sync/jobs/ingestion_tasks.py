"""Celery tasks for record ingestion."""

from typing import Any

from pulse_sync.adapters.leases import get_lease_backend, hold_lease
from pulse_sync.config import settings
from pulse_sync.domain.enums import CollectionType
from pulse_sync.domain.errors import LeaseUnavailable, StoreUnavailable
from pulse_sync.logging import get_logger
from pulse_sync.services.engine import get_engine
from pulse_sync.utils.deadline import Deadline
from pulse_sync.worker import celery_app

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    name="ingestion.ingest_records",
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(StoreUnavailable,),
    retry_backoff=True,
    retry_backoff_max=600,
)
def ingest_records_task(
    self: Any,
    records: list[dict[str, Any]],
    collection_type: str = CollectionType.AUTO,
    holder: str | None = None,
) -> dict[str, Any]:
    """Normalize and merge one batch from a producer.

    Holds the collection lease for ``collection_type`` while merging, so an
    automated and a manual run of the same type never overlap. Retrying is
    safe: merging the same batch again changes nothing.

    Args:
        records: Raw records in wire form.
        collection_type: Collection type whose lease is held (``auto`` or ``manual``).
        holder: Lease holder name; defaults to the task id.

    Returns:
        Result dict with the merge report.
    """
    task_id = self.request.id
    kind = CollectionType(collection_type)
    holder = holder or f"task:{task_id}"
    logger.info("ingest_records_started", task_id=task_id, collection_type=str(kind), count=len(records))

    try:
        with hold_lease(get_lease_backend(), kind, holder, settings.lease_ttl_seconds):
            deadline = Deadline.from_timeout(settings.sync_default_timeout_seconds)
            report = get_engine().normalize_and_merge(records, deadline=deadline)
    except LeaseUnavailable as e:
        logger.warning("ingest_records_lease_busy", task_id=task_id, holder=e.holder)
        raise self.retry(exc=e, countdown=30)

    result = {
        "success": True,
        "task_id": task_id,
        "collection_type": str(kind),
        **report.to_dict(),
    }
    logger.info(
        "ingest_records_completed",
        task_id=task_id,
        inserted=report.inserted,
        updated=report.updated,
        unchanged=report.unchanged,
        rejected=len(report.rejected),
    )
    return result
