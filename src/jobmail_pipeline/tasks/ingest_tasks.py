"""
Celery tasks for asynchronous batch ingestion.

Tasks accept JSON-serializable dicts and return dicts for compatibility
with Celery's JSON serialization.
"""

import asyncio
import time

import structlog
from celery import Task
from redis.exceptions import ConnectionError as RedisConnectionError

from jobmail_pipeline.config import settings
from jobmail_pipeline.fallback.engine import FallbackOrchestrator
from jobmail_pipeline.ingestion.pipeline import IngestionPipeline
from jobmail_pipeline.models.input_models import EmailInput
from jobmail_pipeline.models.records import IngestSummary
from jobmail_pipeline.persistence import RedisClient, build_store
from jobmail_pipeline.providers.factory import build_providers
from jobmail_pipeline.review.gate import ReviewGate
from jobmail_pipeline.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)


class IngestTask(Task):
    """
    Base task class with resource construction.

    Every task invocation runs in a fresh event loop (asyncio.run), so
    loop-bound resources (Redis pool, HTTP client) are created and closed
    per run instead of being cached on the worker.
    """

    async def run_ingest(self, emails: list[EmailInput]) -> IngestSummary:
        store = build_store(settings)
        orchestrator = FallbackOrchestrator(
            build_providers(settings),
            timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
            failure_penalty=settings.FAILURE_CONFIDENCE_PENALTY,
        )
        try:
            pipeline = IngestionPipeline(
                orchestrator,
                store,
                ReviewGate(store, threshold=settings.REVIEW_THRESHOLD),
                sub_batch_size=settings.SUB_BATCH_SIZE,
                max_workers=settings.INGEST_WORKERS,
                inference_concurrency=settings.INFERENCE_CONCURRENCY,
            )
            return await pipeline.ingest(emails)
        finally:
            await orchestrator.close()
            await store.close()
            await RedisClient.close_async_pool()


@celery_app.task(
    bind=True,
    base=IngestTask,
    name="ingest_batch",
    autoretry_for=(ConnectionError, RedisConnectionError),  # Storage errors are already in the summary
    retry_backoff=True,  # Exponential backoff
    retry_backoff_max=600,  # Max 10 min backoff
    max_retries=3,
)
def ingest_batch_task(self: IngestTask, emails: list[dict]) -> dict:
    """
    Ingest a batch of emails.

    Args:
        emails: EmailInput dicts (JSON-serializable)

    Returns:
        IngestSummary as dict

    Raises:
        pydantic.ValidationError: Malformed payload (not retried)
    """
    start_time = time.time()
    batch = [EmailInput.model_validate(item) for item in emails]

    with structlog.contextvars.bound_contextvars(task_id=self.request.id):
        logger.info("Celery ingest task started", emails=len(batch), retries=self.request.retries)

        summary = asyncio.run(self.run_ingest(batch))

        logger.info(
            "Celery ingest task completed",
            written=summary.written,
            skipped_duplicates=summary.skipped_duplicates,
            failed_sub_batches=len(summary.errors),
            duration_ms=int((time.time() - start_time) * 1000),
        )

    result = summary.model_dump(mode="json")
    result["failed_records"] = summary.failed_records
    return result
