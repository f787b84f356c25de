"""
Unit tests for ReviewGate: routing, record building, human decisions.
"""

import pytest

from jobmail_pipeline.models.enums import ApplicationStatus, ReviewDecision, ReviewStatus
from jobmail_pipeline.models.output_models import ClassificationResult
from jobmail_pipeline.models.records import job_id_for
from jobmail_pipeline.persistence.exceptions import RecordNotFoundError
from jobmail_pipeline.review.exceptions import InvalidReviewTransition
from jobmail_pipeline.review.gate import ReviewGate


def _result(confidence: float, is_job_related: bool = True) -> ClassificationResult:
    return ClassificationResult(
        is_job_related=is_job_related,
        company="Acme Corp" if is_job_related else None,
        status=ApplicationStatus.APPLIED if is_job_related else None,
        confidence=confidence,
        decision_path="keyword>norm:company_from_subject",
        notes=("company_from_subject",),
    )


async def _persist(store, record, job=None):
    async with store.begin_transaction() as tx:
        tx.upsert_processing_record(record)
        if job is not None:
            tx.insert_job(job)


# ============================================================================
# Routing
# ============================================================================

class TestRoute:
    @pytest.mark.parametrize(
        "confidence,expected",
        [
            (0.0, ReviewStatus.NEEDS_REVIEW),
            (0.79, ReviewStatus.NEEDS_REVIEW),
            (0.8, ReviewStatus.APPROVED),
            (0.95, ReviewStatus.APPROVED),
        ],
    )
    def test_threshold(self, review_gate, confidence, expected):
        assert review_gate.route(_result(confidence)) is expected

    def test_custom_threshold(self, memory_store):
        gate = ReviewGate(memory_store, threshold=0.5)

        assert gate.route(_result(0.6)) is ReviewStatus.APPROVED

    def test_invalid_threshold(self, memory_store):
        with pytest.raises(ValueError):
            ReviewGate(memory_store, threshold=1.2)


class TestBuildRecord:
    def test_low_confidence_record(self, review_gate, create_test_email):
        email = create_test_email()

        record, job = review_gate.build_record(email, _result(0.6), duration_ms=42)

        assert record.review_status is ReviewStatus.NEEDS_REVIEW
        assert job is None
        assert record.job_id is None
        assert record.message_id == email.provider_message_id
        assert record.account_id == email.account_id
        assert record.subject == email.subject
        assert record.company == "Acme Corp"
        assert record.notes == ["company_from_subject"]
        assert record.processing_duration_ms == 42

    def test_auto_approved_job_promoted(self, review_gate, create_test_email):
        record, job = review_gate.build_record(create_test_email(), _result(0.9))

        assert record.review_status is ReviewStatus.APPROVED
        assert job is not None
        assert record.job_id == job.job_id == job_id_for(record.record_id)
        assert job.company == "Acme Corp"

    def test_auto_approved_non_job_not_promoted(self, review_gate, create_test_email):
        record, job = review_gate.build_record(create_test_email(), _result(0.9, is_job_related=False))

        assert record.review_status is ReviewStatus.APPROVED
        assert job is None

    def test_record_id_deterministic(self, review_gate, create_test_email):
        first, _ = review_gate.build_record(create_test_email(), _result(0.6))
        second, _ = review_gate.build_record(create_test_email(), _result(0.9))

        assert first.record_id == second.record_id


# ============================================================================
# Human decisions
# ============================================================================

class TestReviewDecision:
    @pytest.mark.asyncio
    async def test_approve_promotes_job(self, review_gate, memory_store, create_test_email):
        record, _ = review_gate.build_record(create_test_email(), _result(0.6))
        await _persist(memory_store, record)

        updated = await review_gate.review_decision(record.record_id, ReviewDecision.APPROVED, reviewer="jane")

        assert updated.review_status is ReviewStatus.APPROVED
        assert updated.reviewed_by == "jane"
        assert updated.reviewed_at is not None
        assert updated.job_id == job_id_for(record.record_id)

        stored = await memory_store.get_record(record.record_id)
        assert stored.review_status is ReviewStatus.APPROVED
        job = await memory_store.get_job(updated.job_id)
        assert job is not None
        assert job.company == "Acme Corp"
        assert job.source_message_id == record.message_id

    @pytest.mark.asyncio
    async def test_reject_creates_no_job(self, review_gate, memory_store, create_test_email):
        record, _ = review_gate.build_record(create_test_email(), _result(0.6))
        await _persist(memory_store, record)

        updated = await review_gate.review_decision(record.record_id, "rejected")

        assert updated.review_status is ReviewStatus.REJECTED
        assert updated.job_id is None
        assert memory_store.jobs == {}

    @pytest.mark.asyncio
    async def test_approve_non_job_creates_no_job(self, review_gate, memory_store, create_test_email):
        record, _ = review_gate.build_record(create_test_email(), _result(0.3, is_job_related=False))
        await _persist(memory_store, record)

        updated = await review_gate.review_decision(record.record_id, ReviewDecision.APPROVED)

        assert updated.review_status is ReviewStatus.APPROVED
        assert updated.job_id is None
        assert memory_store.jobs == {}

    @pytest.mark.asyncio
    async def test_second_decision_rejected(self, review_gate, memory_store, create_test_email):
        record, _ = review_gate.build_record(create_test_email(), _result(0.6))
        await _persist(memory_store, record)
        await review_gate.review_decision(record.record_id, ReviewDecision.REJECTED)

        with pytest.raises(InvalidReviewTransition) as exc_info:
            await review_gate.review_decision(record.record_id, ReviewDecision.APPROVED)

        assert exc_info.value.current_status is ReviewStatus.REJECTED
        assert exc_info.value.details == {
            "record_id": record.record_id,
            "current_status": "rejected",
            "requested": "approved",
        }
        # The terminal record is untouched
        stored = await memory_store.get_record(record.record_id)
        assert stored.review_status is ReviewStatus.REJECTED
        assert memory_store.jobs == {}

    @pytest.mark.asyncio
    async def test_auto_approved_record_not_reviewable(self, review_gate, memory_store, create_test_email):
        record, job = review_gate.build_record(create_test_email(), _result(0.95))
        await _persist(memory_store, record, job)

        with pytest.raises(InvalidReviewTransition):
            await review_gate.review_decision(record.record_id, ReviewDecision.REJECTED)

    @pytest.mark.asyncio
    async def test_unknown_record(self, review_gate):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await review_gate.review_decision("missing-id", ReviewDecision.APPROVED)

        assert exc_info.value.record_id == "missing-id"

    @pytest.mark.asyncio
    async def test_concurrent_decision_loses(self, review_gate, memory_store, create_test_email):
        record, _ = review_gate.build_record(create_test_email(), _result(0.6))
        await _persist(memory_store, record)

        # Another reviewer decides between our read and our write
        original_cas = memory_store.compare_and_set_review

        async def racing_cas(updated, expected_status, job=None):
            rival = record.model_copy(update={"review_status": ReviewStatus.REJECTED})
            await original_cas(rival, expected_status)
            return await original_cas(updated, expected_status, job)

        memory_store.compare_and_set_review = racing_cas

        with pytest.raises(InvalidReviewTransition) as exc_info:
            await review_gate.review_decision(record.record_id, ReviewDecision.APPROVED)

        assert exc_info.value.current_status is ReviewStatus.REJECTED
        assert memory_store.jobs == {}


class TestQueue:
    @pytest.mark.asyncio
    async def test_list_pending_and_stats(self, review_gate, memory_store, create_test_email):
        queued, _ = review_gate.build_record(create_test_email(message_id="m-1"), _result(0.5))
        approved, job = review_gate.build_record(create_test_email(message_id="m-2"), _result(0.9))
        await _persist(memory_store, queued)
        await _persist(memory_store, approved, job)

        pending = await review_gate.list_pending()
        stats = await review_gate.stats()

        assert [r.record_id for r in pending] == [queued.record_id]
        assert stats.by_status["needs_review"] == 1
        assert stats.by_status["approved"] == 1
        assert stats.by_status["rejected"] == 0
        assert stats.jobs_promoted == 1

    @pytest.mark.asyncio
    async def test_list_pending_by_account(self, review_gate, memory_store, create_test_email):
        mine, _ = review_gate.build_record(create_test_email(message_id="m-1", account_id="a"), _result(0.5))
        theirs, _ = review_gate.build_record(create_test_email(message_id="m-1", account_id="b"), _result(0.5))
        await _persist(memory_store, mine)
        await _persist(memory_store, theirs)

        pending = await review_gate.list_pending(account_id="b")

        assert [r.account_id for r in pending] == ["b"]
