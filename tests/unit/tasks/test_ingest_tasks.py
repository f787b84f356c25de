"""
Unit tests for the Celery ingestion task.

The task runs eagerly via .apply(); store and provider construction are
patched to the in-memory store and an in-process provider chain.
"""

from unittest.mock import AsyncMock, patch

import pytest

from jobmail_pipeline.models.records import IngestSummary, SubBatchFailure
from jobmail_pipeline.persistence.memory import InMemoryProcessingStore
from jobmail_pipeline.providers.base import CallableProvider
from jobmail_pipeline.providers.heuristic import EmptyBaselineProvider
from jobmail_pipeline.tasks.ingest_tasks import IngestTask, ingest_batch_task


@pytest.fixture
def task_store():
    return InMemoryProcessingStore()


@pytest.fixture
def patched_resources(task_store, job_reply):
    providers = [CallableProvider("fake_model", job_reply, confidence_band=(0.9, 0.9)), EmptyBaselineProvider()]
    with patch("jobmail_pipeline.tasks.ingest_tasks.build_store", return_value=task_store), patch(
        "jobmail_pipeline.tasks.ingest_tasks.build_providers", return_value=providers
    ), patch("jobmail_pipeline.tasks.ingest_tasks.RedisClient.close_async_pool", new=AsyncMock()) as close_pool:
        yield close_pool


def _payload(create_test_batch, count):
    return [email.model_dump(mode="json") for email in create_test_batch(count)]


def test_ingest_batch_task_returns_summary(patched_resources, task_store, create_test_batch):
    result = ingest_batch_task.apply(args=[_payload(create_test_batch, 3)]).get()

    assert result["written"] == 3
    assert result["skipped_duplicates"] == 0
    assert result["failed_records"] == 0
    assert len(task_store.sync_log) == 3
    patched_resources.assert_awaited_once()


def test_ingest_batch_task_is_idempotent(patched_resources, task_store, create_test_batch):
    payload = _payload(create_test_batch, 2)
    ingest_batch_task.apply(args=[payload]).get()

    result = ingest_batch_task.apply(args=[payload]).get()

    assert result["written"] == 0
    assert result["skipped_duplicates"] == 2


def test_failed_records_reported():
    summary = IngestSummary(
        written=1,
        errors=[SubBatchFailure(index=0, message_ids=["a", "b"], error_type="StorageError", message="down")],
    )

    with patch.object(IngestTask, "run_ingest", new=AsyncMock(return_value=summary)):
        result = ingest_batch_task.apply(args=[[]]).get()

    assert result["failed_records"] == 2
    assert result["errors"][0]["message_ids"] == ["a", "b"]


def test_malformed_payload_fails_task():
    with patch.object(IngestTask, "run_ingest", new=AsyncMock()) as run_ingest:
        outcome = ingest_batch_task.apply(args=[[{"subject": "missing ids"}]])

    assert outcome.failed()
    run_ingest.assert_not_awaited()
