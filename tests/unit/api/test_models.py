"""
Unit tests for API request/response models.
"""

import pytest
from pydantic import ValidationError

from jobmail_pipeline.api.models import (
    ErrorResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    ReviewDecisionRequest,
    TaskStatusResponse,
)
from jobmail_pipeline.models.enums import ReviewDecision
from jobmail_pipeline.models.records import IngestSummary


def test_ingest_request(create_test_batch):
    """Test IngestRequest accepts a batch of EmailInput dicts."""
    payload = [email.model_dump(mode="json") for email in create_test_batch(2)]

    request = IngestRequest(emails=payload)

    assert [e.provider_message_id for e in request.emails] == ["msg-000", "msg-001"]


def test_ingest_request_requires_emails():
    """Test IngestRequest rejects an empty batch."""
    with pytest.raises(ValidationError):
        IngestRequest(emails=[])


def test_ingest_response_model():
    """Test IngestResponse model validation."""
    response = IngestResponse(status="completed", summary=IngestSummary(written=3, skipped_duplicates=1))

    dumped = response.model_dump(mode="json")
    assert dumped["summary"]["written"] == 3
    assert dumped["summary"]["errors"] == []


def test_review_decision_request():
    """Test decisions are restricted to approved / rejected."""
    assert ReviewDecisionRequest(decision="approved").decision is ReviewDecision.APPROVED

    with pytest.raises(ValidationError):
        ReviewDecisionRequest(decision="needs_review")


def test_task_status_response_model():
    """Test TaskStatusResponse model."""
    # Success case
    success = TaskStatusResponse(task_id="task-123", status="SUCCESS", result=IngestSummary(written=2))
    assert success.result.written == 2
    assert success.error is None

    # Failure case
    failure = TaskStatusResponse(task_id="task-456", status="FAILURE", error="Redis unavailable")
    assert failure.result is None
    assert failure.error == "Redis unavailable"


def test_health_response_model():
    """Test HealthResponse model."""
    response = HealthResponse(
        status="degraded",
        version="0.1.0",
        services={"storage": "ok", "ollama": "unreachable"},
    )

    assert response.status == "degraded"
    assert response.timestamp is not None


def test_error_response_model():
    """Test ErrorResponse model."""
    response = ErrorResponse(
        error="invalid_review_transition",
        message="Record is already rejected",
        details={"current_status": "rejected"},
    )

    assert response.details == {"current_status": "rejected"}
