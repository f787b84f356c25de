"""
Unit tests for the synchronous API routes.

The store, orchestrator and LLM client are replaced through
app.dependency_overrides; the pipeline and review gate are the real ones.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from jobmail_pipeline.api.dependencies import get_llm_client, get_orchestrator, get_settings, get_store
from jobmail_pipeline.main import app
from jobmail_pipeline.persistence.exceptions import StorageError


@pytest.fixture
def api_settings(test_settings):
    # Above the fake orchestrator's 0.9 so ingested mail lands in the review queue
    return test_settings.model_copy(update={"REVIEW_THRESHOLD": 0.95})


@pytest.fixture
def client(api_settings, memory_store, fake_orchestrator, mock_llm_client):
    app.dependency_overrides[get_settings] = lambda: api_settings
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_orchestrator] = lambda: fake_orchestrator
    app.dependency_overrides[get_llm_client] = lambda: mock_llm_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def email_payload(create_test_batch):
    def _create(count: int = 1) -> list[dict]:
        return [email.model_dump(mode="json") for email in create_test_batch(count)]

    return _create


def _ingest(client, payload):
    response = client.post("/api/v1/ingest", json={"emails": payload})
    assert response.status_code == 200
    return response.json()


# ============================================================================
# Ingestion
# ============================================================================

class TestIngestEndpoint:
    def test_ingest_batch(self, client, email_payload):
        body = _ingest(client, email_payload(3))

        assert body["status"] == "completed"
        assert body["summary"]["written"] == 3
        assert body["summary"]["needs_review"] == 3
        assert body["summary"]["errors"] == []

    def test_reingest_counts_duplicates(self, client, email_payload):
        payload = email_payload(2)
        _ingest(client, payload)

        body = _ingest(client, payload)

        assert body["summary"]["written"] == 0
        assert body["summary"]["skipped_duplicates"] == 2

    def test_partial_status_on_sub_batch_failure(self, client, memory_store, email_payload):
        original = memory_store._apply

        def failing_apply(records, markers, jobs):
            if any(r.message_id == "msg-000" for r in records):
                raise StorageError("connection reset")
            original(records, markers, jobs)

        memory_store._apply = failing_apply

        body = _ingest(client, email_payload(3))

        assert body["status"] == "partial"
        assert body["summary"]["written"] == 1
        assert body["summary"]["errors"][0]["index"] == 0

    def test_empty_batch_rejected(self, client):
        response = client.post("/api/v1/ingest", json={"emails": []})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_missing_message_id_rejected(self, client, email_payload):
        payload = email_payload(1)
        del payload[0]["provider_message_id"]

        response = client.post("/api/v1/ingest", json={"emails": payload})

        assert response.status_code == 400


# ============================================================================
# Review queue
# ============================================================================

class TestReviewEndpoints:
    def test_list_pending(self, client, email_payload):
        _ingest(client, email_payload(2))

        response = client.get("/api/v1/review")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [r["message_id"] for r in body["records"]] == ["msg-000", "msg-001"]

    def test_list_pending_other_account(self, client, email_payload):
        _ingest(client, email_payload(2))

        response = client.get("/api/v1/review", params={"account_id": "nobody"})

        assert response.json()["count"] == 0

    def test_approve_promotes_job(self, client, memory_store, email_payload):
        _ingest(client, email_payload(1))
        record_id = client.get("/api/v1/review").json()["records"][0]["record_id"]

        response = client.post(
            f"/api/v1/review/{record_id}/decision",
            json={"decision": "approved", "reviewer": "jane"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["review_status"] == "approved"
        assert body["reviewed_by"] == "jane"
        assert body["job_id"] in memory_store.jobs
        assert client.get("/api/v1/review").json()["count"] == 0

    def test_second_decision_conflicts(self, client, email_payload):
        _ingest(client, email_payload(1))
        record_id = client.get("/api/v1/review").json()["records"][0]["record_id"]
        client.post(f"/api/v1/review/{record_id}/decision", json={"decision": "rejected"})

        response = client.post(f"/api/v1/review/{record_id}/decision", json={"decision": "approved"})

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "invalid_review_transition"
        assert body["details"]["current_status"] == "rejected"

    def test_unknown_record(self, client):
        response = client.post("/api/v1/review/missing/decision", json={"decision": "approved"})

        assert response.status_code == 404
        assert response.json()["error"] == "record_not_found"

    def test_invalid_decision(self, client):
        response = client.post("/api/v1/review/any/decision", json={"decision": "maybe"})

        assert response.status_code == 400


# ============================================================================
# Records and stats
# ============================================================================

class TestRecordEndpoints:
    def test_get_record(self, client, email_payload):
        _ingest(client, email_payload(1))
        record_id = client.get("/api/v1/review").json()["records"][0]["record_id"]

        response = client.get(f"/api/v1/records/{record_id}")

        assert response.status_code == 200
        assert response.json()["company"] == "Acme Corp"

    def test_get_unknown_record(self, client):
        assert client.get("/api/v1/records/missing").status_code == 404

    def test_stats(self, client, email_payload):
        _ingest(client, email_payload(3))

        response = client.get("/api/v1/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["by_status"]["needs_review"] == 3
        assert body["job_related"] == 3
        assert body["jobs_promoted"] == 0

    def test_storage_outage_is_503(self, client, memory_store):
        memory_store.get_record = AsyncMock(side_effect=StorageError("redis down"))

        response = client.get("/api/v1/records/any")

        assert response.status_code == 503
        assert response.json()["error"] == "storage_unavailable"

    def test_unexpected_error_is_500(self, api_settings, memory_store):
        memory_store.stats = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_settings] = lambda: api_settings
        app.dependency_overrides[get_store] = lambda: memory_store
        try:
            response = TestClient(app, raise_server_exceptions=False).get("/api/v1/stats")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"


# ============================================================================
# Health
# ============================================================================

class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"] == {"storage": "ok", "ollama": "ok"}

    def test_degraded_without_ollama(self, client, mock_llm_client):
        mock_llm_client.health_check.return_value = False

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_unhealthy_without_storage(self, client, memory_store):
        memory_store.count_records = AsyncMock(side_effect=StorageError("redis down"))

        response = client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["services"]["storage"] == "unreachable (StorageError)"


def test_request_id_echoed(client):
    response = client.get("/api/v1/stats", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"


def test_root(client):
    body = client.get("/").json()

    assert body["docs"] == "/docs"
    assert body["health"] == "/health"
