"""
Celery application for asynchronous ingestion.

Broker and result backend are Redis. Ingestion is idempotent (dedup log plus
reservations), so late acks and redelivery on worker loss are safe.
"""

from celery import Celery
from celery.signals import setup_logging

from jobmail_pipeline.config import settings
from jobmail_pipeline.logging_config import configure_logging

celery_app = Celery(
    "jobmail_pipeline",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["jobmail_pipeline.tasks.ingest_tasks"],
)

celery_app.conf.update(
    # A sync window can hold hundreds of emails and several LLM tiers
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
    task_soft_time_limit=max(settings.CELERY_TASK_TIME_LIMIT - 30, 1),
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
    # Summaries are plain dicts
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    result_expires=86400,
    result_extended=True,
    timezone="UTC",
    enable_utc=True,
)


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    # Connecting this signal stops Celery from installing its own root handler
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
