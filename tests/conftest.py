"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from jobmail_pipeline.config import Settings
from jobmail_pipeline.fallback.engine import FallbackOrchestrator
from jobmail_pipeline.models.enums import ApplicationStatus
from jobmail_pipeline.models.input_models import EmailInput
from jobmail_pipeline.models.output_models import ClassificationResult, RawModelOutput
from jobmail_pipeline.providers.base import CallableProvider
from jobmail_pipeline.providers.heuristic import EmptyBaselineProvider

BASE_TIME = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.REVIEW_THRESHOLD = 0.9
    """
    return Settings(
        # === Application ===
        APP_NAME="Job Mail Pipeline (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Ollama ===
        OLLAMA_BASE_URL="http://localhost:11434",
        OLLAMA_TIMEOUT=5,

        # === Fallback chain ===
        PROVIDER_ORDER=["keyword", "empty_baseline"],
        PROVIDER_TIMEOUT_SECONDS=2.0,

        # === Ingestion ===
        SUB_BATCH_SIZE=2,
        INGEST_WORKERS=2,
        INFERENCE_CONCURRENCY=4,

        # === Storage ===
        STORAGE_BACKEND="memory",
        REDIS_URL="redis://localhost:6379/0",
        REDIS_MAX_CONNECTIONS=10,

        # === Feature Flags ===
        ENABLE_ASYNC_API=True,
        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def create_test_email():
    """Factory fixture to create EmailInput with custom fields.

    Usage:
        def test_something(create_test_email):
            email = create_test_email(subject="Interview invitation", message_id="m-7")
    """
    def _create(
        subject: str = "Thank you for your application to Acme Corp",
        body: str = "Hi Jane,\nWe have received your application and will be in touch.",
        from_address: str = "Acme Recruiting <jobs@acme.com>",
        message_id: str = "msg-001",
        account_id: str = "acct-1",
        received_at: datetime | None = None,
    ) -> EmailInput:
        return EmailInput(
            subject=subject,
            body_plaintext=body,
            from_address=from_address,
            provider_message_id=message_id,
            account_id=account_id,
            received_at=received_at or BASE_TIME,
        )

    return _create


@pytest.fixture
def create_test_batch(create_test_email):
    """Factory fixture for a batch of distinct job emails in one account.

    Message ids are "msg-000", "msg-001", ... and received_at increases by
    one minute per message.
    """
    def _create(count: int, account_id: str = "acct-1", start: int = 0) -> list[EmailInput]:
        return [
            create_test_email(
                message_id=f"msg-{index:03d}",
                account_id=account_id,
                received_at=BASE_TIME + timedelta(minutes=index),
            )
            for index in range(start, start + count)
        ]

    return _create


@pytest.fixture
def sample_classification() -> ClassificationResult:
    """High-confidence result as produced by the first LLM tier."""
    return ClassificationResult(
        is_job_related=True,
        company="Acme Corp",
        position="Data Analyst",
        status=ApplicationStatus.APPLIED,
        confidence=0.95,
        decision_path="two_stage",
    )


@pytest.fixture
def job_reply():
    """Async inference collaborator answering every email as an Applied job mail."""
    async def _infer(subject: str, body: str, from_address: str) -> RawModelOutput:
        return RawModelOutput(is_job_related=True, status="Applied", confidence_hint=0.9)

    return _infer


@pytest.fixture
def fake_orchestrator(job_reply):
    """Orchestrator over an in-process collaborator plus the empty baseline.

    Confidence 0.9, so results route to approved under the default 0.8
    threshold unless normalization says otherwise.
    """
    return FallbackOrchestrator(
        [
            CallableProvider("fake_model", job_reply, confidence_band=(0.9, 0.9)),
            EmptyBaselineProvider(),
        ],
        timeout_seconds=2.0,
    )
