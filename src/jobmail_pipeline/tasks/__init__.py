"""
Celery tasks for asynchronous batch processing.

- celery_app.py: Celery application configuration (broker, backend, etc.)
- ingest_tasks.py: Task definitions (ingest_batch)
"""

from jobmail_pipeline.tasks.celery_app import celery_app
from jobmail_pipeline.tasks.ingest_tasks import ingest_batch_task

__all__ = [
    "celery_app",
    "ingest_batch_task",
]
