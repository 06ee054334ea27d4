"""Celery worker configuration."""

from celery import Celery
from celery.schedules import crontab

from pulse_sync.config import settings
from pulse_sync.logging import setup_logging

# Setup logging before anything else
setup_logging()

# Create Celery app
celery_app = Celery(
    "pulse_sync",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Crontab schedules run in the day-key zone, so "midnight" is local midnight
    timezone=settings.day_key_timezone,
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=600,  # 10 minutes max
    task_soft_time_limit=540,  # 9 minutes soft limit
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Result backend
    result_expires=86400,  # 24 hours
    # Task routing
    task_routes={
        "ingestion.ingest_records": {"queue": "default"},
        "retention.sweep": {"queue": "low"},
    },
    # Beat scheduler (for periodic tasks)
    beat_schedule={
        # Retention sweep - daily at local midnight
        "retention-sweep-daily": {
            "task": "retention.sweep",
            "schedule": crontab(hour=0, minute=0),
            "args": (),
            "options": {"queue": "low"},
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["pulse_sync.jobs"])
