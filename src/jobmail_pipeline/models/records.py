"""
Persisted records and ingestion summaries.

ProcessingRecord ids are derived deterministically from the dedup key, so
writing the same message twice always lands on the same record.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from jobmail_pipeline.models.enums import ApplicationStatus, ReviewStatus

_RECORD_NAMESPACE = uuid.UUID("6f1c1f6e-5d0a-4c53-9d8e-7b1e0b6f2a41")
_JOB_NAMESPACE = uuid.UUID("0c3f4b8e-92d7-4e0f-a1c5-3d6e2f9a8b17")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def record_id_for(message_id: str, account_id: str) -> str:
    """Deterministic record id for a (message id, account id) pair."""
    return str(uuid.uuid5(_RECORD_NAMESPACE, f"{account_id}\x1f{message_id}"))


def job_id_for(record_id: str) -> str:
    """Deterministic job id for the record it was promoted from."""
    return str(uuid.uuid5(_JOB_NAMESPACE, record_id))


class ProcessingRecord(BaseModel):
    """
    One classified email, created once per (message_id, account_id).

    Written by the ingestion pipeline on first sight and afterwards only by
    the review gate on a human decision.
    """

    model_config = ConfigDict(extra="forbid")

    record_id: str = Field(..., description="Deterministic id, see record_id_for()")
    message_id: str
    account_id: str
    subject: str
    from_address: str
    body: str
    received_at: Optional[datetime] = None

    # Classification fields
    is_job_related: bool
    company: Optional[str] = None
    position: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    decision_path: str = ""
    notes: list[str] = Field(default_factory=list)

    # Review lifecycle
    review_status: ReviewStatus = ReviewStatus.PENDING
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    job_id: Optional[str] = Field(default=None, description="Set once promoted to a JobRecord")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    processing_duration_ms: int = Field(default=0, ge=0)

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.message_id, self.account_id)


class SyncMarker(BaseModel):
    """Append-only dedup log entry. Inserted once, never updated."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    account_id: str
    processed_at: datetime = Field(default_factory=utcnow)
    is_job_related: bool


class JobRecord(BaseModel):
    """Tracked job application, created when a record is approved."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    record_id: str
    account_id: str
    company: Optional[str] = None
    position: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    source_message_id: str
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_record(cls, record: ProcessingRecord) -> "JobRecord":
        return cls(
            job_id=job_id_for(record.record_id),
            record_id=record.record_id,
            account_id=record.account_id,
            company=record.company,
            position=record.position,
            status=record.status,
            source_message_id=record.message_id,
        )


class SubBatchFailure(BaseModel):
    """A sub-batch whose transaction was rolled back."""

    index: int = Field(..., ge=0, description="Zero-based sub-batch position in the ingest call")
    message_ids: list[str] = Field(default_factory=list)
    error_type: str
    message: str


class IngestSummary(BaseModel):
    """
    Outcome of one ingest call.

    Ingestion never aborts mid-run; failed sub-batches are listed in
    `errors` and can be retried safely.
    """

    written: int = Field(default=0, ge=0)
    skipped_duplicates: int = Field(default=0, ge=0)
    errors: list[SubBatchFailure] = Field(default_factory=list)
    needs_review: int = Field(default=0, ge=0, description="Written records routed to review")
    auto_approved: int = Field(default=0, ge=0, description="Written records approved at ingestion")
    duration_ms: int = Field(default=0, ge=0)

    @property
    def failed_records(self) -> int:
        return sum(len(failure.message_ids) for failure in self.errors)


class ReviewStats(BaseModel):
    """Counts per review status plus job-related totals."""

    by_status: dict[str, int] = Field(default_factory=dict)
    job_related: int = 0
    not_job_related: int = 0
    jobs_promoted: int = 0
