"""
Batch ingestion pipeline.

Processes a window of emails through classification and normalization and
commits the results in fixed-size sub-batches, one atomic transaction each.

Per email:
1. Reserve (message_id, account_id) in the store; a failed reservation means
   the message is already logged or being processed, so it is counted as a
   duplicate before any inference work
2. Classify through the fallback orchestrator, then normalize
3. Route through the review gate and buffer record, sync marker and (when
   auto-approved) the promoted job

A storage failure rolls back the whole sub-batch, releases its reservations,
and is reported in the summary. Earlier and later sub-batches are unaffected
and a retry of the same window picks up exactly the missing messages.

Usage:
    pipeline = IngestionPipeline(orchestrator, store, ReviewGate(store))
    summary = await pipeline.ingest(emails)
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from jobmail_pipeline.fallback.engine import FallbackOrchestrator
from jobmail_pipeline.ingestion.events import EventEmitter, EventSink, PipelineStage
from jobmail_pipeline.models.enums import ReviewStatus
from jobmail_pipeline.models.input_models import EmailInput
from jobmail_pipeline.models.output_models import DECISION_PATH_SEPARATOR
from jobmail_pipeline.models.records import (
    IngestSummary,
    JobRecord,
    ProcessingRecord,
    SubBatchFailure,
    SyncMarker,
)
from jobmail_pipeline.monitoring.metrics import (
    ingested_records_total,
    normalization_rules_total,
    review_decisions_total,
    review_queue_depth,
    sub_batch_commit_seconds,
    sub_batch_commits_total,
)
from jobmail_pipeline.normalization.engine import PATH_PREFIX, normalize
from jobmail_pipeline.persistence.base import ProcessingStore
from jobmail_pipeline.persistence.exceptions import StorageError
from jobmail_pipeline.review.gate import ReviewGate

logger = structlog.get_logger(__name__)


@dataclass
class _Processed:
    record: ProcessingRecord
    marker: SyncMarker
    job: Optional[JobRecord]


@dataclass
class _SubBatchOutcome:
    written: int = 0
    duplicates: int = 0
    needs_review: int = 0
    auto_approved: int = 0
    failure: Optional[SubBatchFailure] = None


def _single_account(emails: Sequence[EmailInput]) -> Optional[str]:
    accounts = {email.account_id for email in emails}
    return accounts.pop() if len(accounts) == 1 else None


class IngestionPipeline:
    """
    Deduplicating, transactional ingestion of email batches.

    Attributes:
        orchestrator: Fallback orchestrator (never raises)
        store: Processing store
        review_gate: Confidence router used to build records
        sub_batch_size: Emails per transaction
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        store: ProcessingStore,
        review_gate: ReviewGate,
        sub_batch_size: int = 50,
        max_workers: int = 4,
        inference_concurrency: int = 8,
        event_sinks: Optional[Sequence[EventSink]] = None,
    ):
        """
        Initialize pipeline.

        Args:
            orchestrator: Provider chain
            store: Processing store shared with the review gate
            review_gate: Router for freshly classified records
            sub_batch_size: Emails per atomic transaction
            max_workers: Sub-batches processed concurrently
            inference_concurrency: Orchestrator calls in flight across all sub-batches
            event_sinks: Progress sinks; defaults to structured logging
        """
        if sub_batch_size < 1 or max_workers < 1 or inference_concurrency < 1:
            raise ValueError("sub_batch_size, max_workers and inference_concurrency must be positive")

        self.orchestrator = orchestrator
        self.store = store
        self.review_gate = review_gate
        self.sub_batch_size = sub_batch_size
        self.max_workers = max_workers
        self.inference_concurrency = inference_concurrency
        self.events = EventEmitter(event_sinks)

    async def ingest(self, emails: Sequence[EmailInput]) -> IngestSummary:
        """
        Ingest a batch of emails.

        Always completes: storage failures are reported per sub-batch in
        `errors`, never raised.

        Args:
            emails: Emails to process, in any order

        Returns:
            IngestSummary with written / duplicate counts and failed sub-batches
        """
        start = time.monotonic()
        batch_id = uuid.uuid4().hex[:12]
        chunks = [
            list(emails[i : i + self.sub_batch_size]) for i in range(0, len(emails), self.sub_batch_size)
        ]

        # Semaphores are created per call so the pipeline can be reused across event loops
        workers = asyncio.Semaphore(self.max_workers)
        inference = asyncio.Semaphore(self.inference_concurrency)

        with structlog.contextvars.bound_contextvars(batch_id=batch_id):
            logger.info("Ingestion started", emails=len(emails), sub_batches=len(chunks))

            outcomes = await asyncio.gather(
                *(self._run_sub_batch(index, chunk, workers, inference) for index, chunk in enumerate(chunks))
            )

            summary = IngestSummary(
                written=sum(o.written for o in outcomes),
                skipped_duplicates=sum(o.duplicates for o in outcomes),
                errors=[o.failure for o in outcomes if o.failure is not None],
                needs_review=sum(o.needs_review for o in outcomes),
                auto_approved=sum(o.auto_approved for o in outcomes),
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            logger.info(
                "Ingestion finished",
                written=summary.written,
                skipped_duplicates=summary.skipped_duplicates,
                failed_sub_batches=len(summary.errors),
                needs_review=summary.needs_review,
                duration_ms=summary.duration_ms,
            )
        return summary

    async def _run_sub_batch(
        self,
        index: int,
        chunk: list[EmailInput],
        workers: asyncio.Semaphore,
        inference: asyncio.Semaphore,
    ) -> _SubBatchOutcome:
        async with workers:
            outcome = _SubBatchOutcome()
            account_id = _single_account(chunk)
            reserved: list[EmailInput] = []
            skipped: set[str] = set()

            try:
                for email in chunk:
                    if await self.store.reserve(email.provider_message_id, email.account_id):
                        reserved.append(email)
                    else:
                        skipped.add(email.provider_message_id)
                        outcome.duplicates += 1

                processed = await asyncio.gather(*(self._process(email, inference) for email in reserved))
                self.events.emit(
                    PipelineStage.CLASSIFY_DONE,
                    account_id=account_id,
                    sub_batch=index,
                    classified=len(processed),
                    duplicates=outcome.duplicates,
                )

                if processed:
                    await self._commit(processed)
            except StorageError as e:
                logger.error(
                    "Sub-batch rolled back",
                    sub_batch=index,
                    emails=len(chunk),
                    error=e.message,
                )
                # Includes messages the failure kept from being checked at all
                unwritten = [email.provider_message_id for email in chunk if email.provider_message_id not in skipped]
                sub_batch_commits_total.labels(outcome="rolled_back").inc()
                ingested_records_total.labels(outcome="failed").inc(len(unwritten))
                outcome.failure = SubBatchFailure(
                    index=index,
                    message_ids=unwritten,
                    error_type=type(e).__name__,
                    message=e.message,
                )
                self.events.emit(
                    PipelineStage.BATCH_FAILED,
                    account_id=account_id,
                    sub_batch=index,
                    error=e.message,
                )
                return outcome
            finally:
                await self._release(reserved)

            ingested_records_total.labels(outcome="duplicate").inc(outcome.duplicates)
            if not processed:
                return outcome

            for item in processed:
                status = item.record.review_status
                review_decisions_total.labels(origin="ingestion", decision=status.value).inc()
                if status is ReviewStatus.NEEDS_REVIEW:
                    outcome.needs_review += 1
                else:
                    outcome.auto_approved += 1
                for step in item.record.decision_path.split(DECISION_PATH_SEPARATOR):
                    if step.startswith(PATH_PREFIX):
                        normalization_rules_total.labels(tag=step[len(PATH_PREFIX) :].split(":")[0]).inc()

            outcome.written = len(processed)
            ingested_records_total.labels(outcome="written").inc(outcome.written)
            review_queue_depth.inc(outcome.needs_review)

            self.events.emit(
                PipelineStage.BATCH_SAVED,
                account_id=account_id,
                sub_batch=index,
                written=outcome.written,
                needs_review=outcome.needs_review,
            )
            return outcome

    async def _process(self, email: EmailInput, inference: asyncio.Semaphore) -> _Processed:
        evidence = email.evidence()
        start = time.monotonic()
        async with inference:
            classified = await self.orchestrator.classify(evidence)
        normalized = normalize(evidence, classified)
        duration_ms = int((time.monotonic() - start) * 1000)

        record, job = self.review_gate.build_record(email, normalized, duration_ms)
        marker = SyncMarker(
            message_id=email.provider_message_id,
            account_id=email.account_id,
            is_job_related=record.is_job_related,
        )
        logger.debug(
            "Email classified",
            message_id=email.provider_message_id,
            is_job_related=record.is_job_related,
            confidence=record.confidence,
            review_status=record.review_status.value,
        )
        return _Processed(record=record, marker=marker, job=job)

    async def _commit(self, processed: Sequence[_Processed]) -> None:
        """Write one sub-batch atomically. Raises StorageError after rollback."""
        start = time.monotonic()
        async with self.store.begin_transaction() as tx:
            for item in processed:
                tx.upsert_processing_record(item.record)
                tx.insert_sync_marker(item.marker)
                if item.job is not None:
                    tx.insert_job(item.job)
        sub_batch_commit_seconds.observe(time.monotonic() - start)
        sub_batch_commits_total.labels(outcome="committed").inc()

    async def _release(self, emails: Sequence[EmailInput]) -> None:
        for email in emails:
            await self.store.release(email.provider_message_id, email.account_id)
