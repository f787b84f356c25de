"""
Review gate.

Routes freshly classified emails either straight to approval or into the
human review queue, and applies human decisions to queued records.

Lifecycle:
    pending -> needs_review | approved      (at ingestion, by confidence)
    needs_review -> approved | rejected     (human decision, exactly once)

Approval of a job-related record promotes it to a JobRecord in the same
atomic write that records the approval.
"""

from typing import Optional, Union

import structlog

from jobmail_pipeline.models.enums import ReviewDecision, ReviewStatus
from jobmail_pipeline.models.input_models import EmailInput
from jobmail_pipeline.models.output_models import ClassificationResult
from jobmail_pipeline.models.records import (
    JobRecord,
    ProcessingRecord,
    ReviewStats,
    record_id_for,
    utcnow,
)
from jobmail_pipeline.monitoring.metrics import review_decisions_total, review_queue_depth
from jobmail_pipeline.persistence.base import ProcessingStore
from jobmail_pipeline.persistence.exceptions import RecordNotFoundError
from jobmail_pipeline.review.exceptions import InvalidReviewTransition

logger = structlog.get_logger(__name__)


class ReviewGate:
    """
    Confidence-threshold router plus the human decision path.

    Attributes:
        store: Processing store holding the review queue
        threshold: Records with confidence strictly below this need review
    """

    def __init__(self, store: ProcessingStore, threshold: float = 0.8):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        self.store = store
        self.threshold = threshold

    def route(self, result: ClassificationResult) -> ReviewStatus:
        """needs_review iff confidence < threshold, otherwise approved."""
        if result.confidence < self.threshold:
            return ReviewStatus.NEEDS_REVIEW
        return ReviewStatus.APPROVED

    def build_record(
        self,
        email: EmailInput,
        result: ClassificationResult,
        duration_ms: int = 0,
    ) -> tuple[ProcessingRecord, Optional[JobRecord]]:
        """
        Create the ProcessingRecord for a first write, already routed.

        Args:
            email: Source email
            result: Normalized classification
            duration_ms: Classification wall time

        Returns:
            Tuple of (record, job to promote or None). The job must be written
            in the same transaction as the record.
        """
        record = ProcessingRecord(
            record_id=record_id_for(email.provider_message_id, email.account_id),
            message_id=email.provider_message_id,
            account_id=email.account_id,
            subject=email.subject,
            from_address=email.from_address,
            body=email.body_plaintext,
            received_at=email.received_at,
            is_job_related=result.is_job_related,
            company=result.company,
            position=result.position,
            status=result.status,
            confidence=result.confidence,
            decision_path=result.decision_path,
            notes=list(result.notes),
            review_status=self.route(result),
            processing_duration_ms=max(duration_ms, 0),
        )

        job = None
        if record.review_status is ReviewStatus.APPROVED and record.is_job_related:
            job = JobRecord.from_record(record)
            record = record.model_copy(update={"job_id": job.job_id})

        return record, job

    async def review_decision(
        self,
        record_id: str,
        decision: Union[ReviewDecision, str],
        reviewer: Optional[str] = None,
    ) -> ProcessingRecord:
        """
        Apply a human decision to a queued record.

        Args:
            record_id: Record to decide on
            decision: approved or rejected
            reviewer: Optional reviewer identity, stored on the record

        Returns:
            Updated ProcessingRecord

        Raises:
            RecordNotFoundError: Unknown record id
            InvalidReviewTransition: Record is not waiting for review
                (already decided, or auto-approved at ingestion)
        """
        decision = ReviewDecision(decision)
        record = await self.store.get_record(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)

        if record.review_status is not ReviewStatus.NEEDS_REVIEW:
            logger.warning(
                "Rejected review transition",
                record_id=record_id,
                current_status=record.review_status.value,
                requested=decision.value,
            )
            raise InvalidReviewTransition(record_id, record.review_status, decision)

        now = utcnow()
        updates = {
            "review_status": decision.to_status(),
            "reviewed_by": reviewer,
            "reviewed_at": now,
            "updated_at": now,
        }
        job = None
        if decision is ReviewDecision.APPROVED and record.is_job_related:
            job = JobRecord.from_record(record)
            updates["job_id"] = job.job_id
        updated = record.model_copy(update=updates)

        applied, current = await self.store.compare_and_set_review(updated, ReviewStatus.NEEDS_REVIEW, job)
        if not applied:
            # Another reviewer won the race
            logger.warning(
                "Rejected review transition",
                record_id=record_id,
                current_status=current.review_status.value,
                requested=decision.value,
                concurrent=True,
            )
            raise InvalidReviewTransition(record_id, current.review_status, decision)

        review_decisions_total.labels(origin="human", decision=decision.value).inc()
        review_queue_depth.dec()
        logger.info(
            "Review decision applied",
            record_id=record_id,
            decision=decision.value,
            promoted_job_id=job.job_id if job else None,
        )
        return updated

    async def list_pending(self, account_id: Optional[str] = None, limit: int = 50) -> list[ProcessingRecord]:
        """Records waiting for a human, oldest first."""
        return await self.store.list_pending(account_id=account_id, limit=limit)

    async def stats(self, account_id: Optional[str] = None) -> ReviewStats:
        """Counts per review status; also refreshes the queue depth gauge."""
        stats = await self.store.stats(account_id=account_id)
        if account_id is None:
            review_queue_depth.set(stats.by_status.get(ReviewStatus.NEEDS_REVIEW.value, 0))
        return stats
