"""Celery worker and beat configuration for the ARK dispatch outbox."""

from celery import Celery
from celery.schedules import crontab

from ark.config import settings

OUTBOX_QUEUE = "dispatch-outbox"

celery = Celery("ark")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_default_queue=OUTBOX_QUEUE,
    task_routes={"ark.modules.events.tasks.*": {"queue": OUTBOX_QUEUE}},
    # A batch that outlives one poll interval must not run twice in parallel
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_soft_time_limit=max(settings.event_outbox_poll_seconds * 6, 30),
    result_expires=6 * 3600,
    broker_transport_options={
        "max_retries": 10,
        "interval_start": 0.2,
        "interval_step": 0.5,
        "interval_max": 5.0,
        "visibility_timeout": 3600,
    },
    beat_schedule={
        "process-event-outbox": {
            "task": "ark.modules.events.tasks.process_outbox",
            "schedule": settings.event_outbox_poll_seconds,
        },
        "cleanup-event-outbox-nightly": {
            "task": "ark.modules.events.tasks.cleanup_outbox",
            "schedule": crontab(hour=2, minute=15),
        },
    },
)

celery.autodiscover_tasks(["ark.modules.events"])
