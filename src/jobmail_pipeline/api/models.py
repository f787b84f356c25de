"""
API-specific request and response models for FastAPI endpoints.

These models wrap the core domain models (EmailInput, IngestSummary,
ProcessingRecord) with API-specific metadata and status information.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from jobmail_pipeline.models.enums import ReviewDecision
from jobmail_pipeline.models.input_models import EmailInput
from jobmail_pipeline.models.records import IngestSummary, ProcessingRecord, utcnow


class IngestRequest(BaseModel):
    """Request for synchronous ingestion."""

    emails: list[EmailInput] = Field(
        description="Emails to classify and persist",
        min_length=1,
        max_length=1000,
    )


class IngestResponse(BaseModel):
    """Response for synchronous ingestion endpoint."""

    status: str = Field(
        description="completed, or partial when a sub-batch failed",
        examples=["completed", "partial"],
    )
    summary: IngestSummary


class IngestSubmitResponse(BaseModel):
    """Response for asynchronous ingestion submission."""

    task_id: str = Field(description="Celery task ID for tracking")
    email_count: int = Field(description="Number of emails submitted", ge=0)
    submitted_at: datetime = Field(default_factory=utcnow)


class TaskStatusResponse(BaseModel):
    """Response for task status check endpoint."""

    task_id: str = Field(description="Celery task ID")
    status: str = Field(
        description="Task state: PENDING, STARTED, SUCCESS, FAILURE, RETRY",
        examples=["PENDING", "STARTED", "SUCCESS", "FAILURE", "RETRY"],
    )
    result: Optional[IngestSummary] = Field(
        default=None,
        description="Ingest summary (present only if status=SUCCESS)",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message (present only if status=FAILURE)",
    )


class ReviewDecisionRequest(BaseModel):
    """Human decision on a queued record."""

    decision: ReviewDecision
    reviewer: Optional[str] = Field(default=None, max_length=200)


class PendingReviewResponse(BaseModel):
    """Records waiting for human review, oldest first."""

    count: int = Field(ge=0)
    records: list[ProcessingRecord]


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "degraded", "unhealthy"],
    )
    version: str = Field(description="Application version", examples=["0.1.0"])
    services: dict[str, str] = Field(
        description="Service-specific health status",
        examples=[{"ollama": "ok", "storage": "ok"}],
    )
    timestamp: datetime = Field(default_factory=utcnow)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(
        description="Error code or type",
        examples=["record_not_found", "invalid_review_transition", "storage_unavailable"],
    )
    message: str = Field(description="Human-readable error message")
    details: Optional[dict] = Field(default=None, description="Additional error details")
    timestamp: datetime = Field(default_factory=utcnow)
