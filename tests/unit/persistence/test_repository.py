"""
Unit tests for RedisProcessingStore.

The Redis client is an AsyncMock; pipelines are MagicMocks whose buffered
commands are plain calls and whose execute() is awaited.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from jobmail_pipeline.models.enums import ReviewStatus
from jobmail_pipeline.models.records import JobRecord, ProcessingRecord, SyncMarker, record_id_for
from jobmail_pipeline.persistence.base import TransactionState
from jobmail_pipeline.persistence.exceptions import RecordNotFoundError, StorageError
from jobmail_pipeline.persistence.repository import INSERT_MARKER_SCRIPT, RedisProcessingStore


@pytest.fixture
def pipe():
    """Pipeline mock usable both directly and as an async context manager."""
    mock = MagicMock()
    mock.__aenter__ = AsyncMock(return_value=mock)
    mock.__aexit__ = AsyncMock(return_value=False)
    mock.execute = AsyncMock(return_value=[])
    mock.watch = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def store(mock_async_redis, pipe, test_settings):
    mock_async_redis.pipeline.return_value = pipe
    return RedisProcessingStore(mock_async_redis, test_settings)


@pytest.fixture
def sample_record():
    return ProcessingRecord(
        record_id=record_id_for("msg-001", "acct-1"),
        message_id="msg-001",
        account_id="acct-1",
        subject="Thank you for your application to Acme Corp",
        from_address="jobs@acme.com",
        body="",
        is_job_related=True,
        company="Acme Corp",
        confidence=0.6,
        review_status=ReviewStatus.NEEDS_REVIEW,
    )


# ============================================================================
# Transactions
# ============================================================================

class TestTransaction:
    @pytest.mark.asyncio
    async def test_commit_writes_everything_in_one_multi_exec(self, store, mock_async_redis, pipe, sample_record):
        marker = SyncMarker(message_id="msg-001", account_id="acct-1", is_job_related=True)
        job = JobRecord.from_record(sample_record)

        async with store.begin_transaction() as tx:
            tx.upsert_processing_record(sample_record)
            tx.insert_sync_marker(marker)
            tx.insert_job(job)

        mock_async_redis.pipeline.assert_called_once_with(transaction=True)
        pipe.execute.assert_awaited_once()
        assert tx.state is TransactionState.COMMITTED

        set_keys = [c.args[0] for c in pipe.set.call_args_list]
        assert f"jobmail:record:{sample_record.record_id}" in set_keys
        assert f"jobmail:job:{job.job_id}" in set_keys
        pipe.eval.assert_called_once_with(
            INSERT_MARKER_SCRIPT,
            2,
            "jobmail:synced:acct-1:msg-001",
            "jobmail:sync_log",
            marker.model_dump_json(),
        )
        pipe.rpush.assert_not_called()

    @pytest.mark.asyncio
    async def test_record_indexed_globally_and_per_account(self, store, pipe, sample_record):
        async with store.begin_transaction() as tx:
            tx.upsert_processing_record(sample_record)

        zadd_keys = [c.args[0] for c in pipe.zadd.call_args_list]
        assert "jobmail:records" in zadd_keys
        assert "jobmail:status:needs_review" in zadd_keys
        assert "jobmail:account:acct-1:status:needs_review" in zadd_keys
        assert "jobmail:relevance:job" in zadd_keys
        # Upserts drop the record from every other status set
        pipe.zrem.assert_any_call("jobmail:status:approved", sample_record.record_id)

    @pytest.mark.asyncio
    async def test_record_ttl(self, mock_async_redis, pipe, test_settings, sample_record):
        mock_async_redis.pipeline.return_value = pipe
        store = RedisProcessingStore(mock_async_redis, test_settings.model_copy(update={"REDIS_RECORD_TTL_DAYS": 1}))

        async with store.begin_transaction() as tx:
            tx.upsert_processing_record(sample_record)

        pipe.set.assert_any_call(
            f"jobmail:record:{sample_record.record_id}", sample_record.model_dump_json(), ex=86400
        )

    @pytest.mark.asyncio
    async def test_commit_failure_raises_storage_error(self, store, pipe, sample_record):
        pipe.execute.side_effect = RedisConnectionError("Connection refused")
        tx = store.begin_transaction()
        tx.upsert_processing_record(sample_record)

        with pytest.raises(StorageError) as exc_info:
            await tx.commit()

        assert tx.state is TransactionState.ROLLED_BACK
        assert exc_info.value.details["error_type"] == "ConnectionError"

    @pytest.mark.asyncio
    async def test_empty_commit_skips_redis(self, store, mock_async_redis):
        async with store.begin_transaction():
            pass

        mock_async_redis.pipeline.assert_not_called()


# ============================================================================
# Dedup log and reservations
# ============================================================================

class TestReservations:
    @pytest.mark.asyncio
    async def test_reserve_claims_key(self, store, mock_async_redis):
        assert await store.reserve("msg-001", "acct-1") is True

        mock_async_redis.set.assert_awaited_once_with("jobmail:reserve:acct-1:msg-001", "1", nx=True, ex=600)

    @pytest.mark.asyncio
    async def test_reserve_held_elsewhere(self, store, mock_async_redis):
        mock_async_redis.set.return_value = None

        assert await store.reserve("msg-001", "acct-1") is False
        mock_async_redis.exists.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reserve_already_logged(self, store, mock_async_redis):
        mock_async_redis.exists.return_value = 1

        assert await store.reserve("msg-001", "acct-1") is False
        mock_async_redis.delete.assert_awaited_once_with("jobmail:reserve:acct-1:msg-001")

    @pytest.mark.asyncio
    async def test_reserve_storage_down(self, store, mock_async_redis):
        mock_async_redis.set.side_effect = RedisConnectionError("down")

        with pytest.raises(StorageError):
            await store.reserve("msg-001", "acct-1")

    @pytest.mark.asyncio
    async def test_release_never_raises(self, store, mock_async_redis):
        mock_async_redis.delete.side_effect = RedisConnectionError("down")

        await store.release("msg-001", "acct-1")

    @pytest.mark.asyncio
    async def test_exists(self, store, mock_async_redis):
        mock_async_redis.exists.return_value = 1

        assert await store.exists("msg-001", "acct-1") is True
        mock_async_redis.exists.assert_awaited_once_with("jobmail:synced:acct-1:msg-001")


# ============================================================================
# Reads
# ============================================================================

class TestReads:
    @pytest.mark.asyncio
    async def test_get_record(self, store, mock_async_redis, sample_record):
        mock_async_redis.get.return_value = sample_record.model_dump_json()

        record = await store.get_record(sample_record.record_id)

        assert record == sample_record

    @pytest.mark.asyncio
    async def test_get_record_missing(self, store):
        assert await store.get_record("missing") is None

    @pytest.mark.asyncio
    async def test_list_pending_skips_expired(self, store, mock_async_redis, sample_record):
        mock_async_redis.zrange.return_value = [sample_record.record_id, "expired-id"]
        mock_async_redis.mget.return_value = [sample_record.model_dump_json(), None]

        records = await store.list_pending(account_id="acct-1", limit=10)

        assert records == [sample_record]
        mock_async_redis.zrange.assert_awaited_once_with("jobmail:account:acct-1:status:needs_review", 0, 9)

    @pytest.mark.asyncio
    async def test_list_records_empty_index(self, store, mock_async_redis):
        assert await store.list_records() == []
        mock_async_redis.mget.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stats(self, store, pipe):
        # pending, needs_review, approved, rejected, job, other, jobs
        pipe.execute.return_value = [0, 3, 5, 1, 6, 3, 4]

        stats = await store.stats()

        assert stats.by_status == {"pending": 0, "needs_review": 3, "approved": 5, "rejected": 1}
        assert stats.job_related == 6
        assert stats.not_job_related == 3
        assert stats.jobs_promoted == 4


# ============================================================================
# Compare-and-set review writes
# ============================================================================

class TestCompareAndSetReview:
    @pytest.mark.asyncio
    async def test_applied(self, store, pipe, sample_record):
        pipe.get.return_value = sample_record.model_dump_json()
        updated = sample_record.model_copy(update={"review_status": ReviewStatus.APPROVED})
        job = JobRecord.from_record(updated)

        applied, current = await store.compare_and_set_review(updated, ReviewStatus.NEEDS_REVIEW, job)

        assert applied is True
        assert current == updated
        pipe.watch.assert_awaited_once_with(f"jobmail:record:{sample_record.record_id}")
        pipe.multi.assert_called_once()
        pipe.execute.assert_awaited_once()
        assert f"jobmail:job:{job.job_id}" in [c.args[0] for c in pipe.set.call_args_list]

    @pytest.mark.asyncio
    async def test_status_moved_on(self, store, pipe, sample_record):
        decided = sample_record.model_copy(update={"review_status": ReviewStatus.REJECTED})
        pipe.get.return_value = decided.model_dump_json()
        updated = sample_record.model_copy(update={"review_status": ReviewStatus.APPROVED})

        applied, current = await store.compare_and_set_review(updated, ReviewStatus.NEEDS_REVIEW)

        assert applied is False
        assert current.review_status is ReviewStatus.REJECTED
        pipe.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_watch_error_rereads(self, store, mock_async_redis, pipe, sample_record):
        pipe.get.return_value = sample_record.model_dump_json()
        pipe.execute.side_effect = WatchError("Watched variable changed")
        decided = sample_record.model_copy(update={"review_status": ReviewStatus.REJECTED})
        mock_async_redis.get.return_value = decided.model_dump_json()
        updated = sample_record.model_copy(update={"review_status": ReviewStatus.APPROVED})

        applied, current = await store.compare_and_set_review(updated, ReviewStatus.NEEDS_REVIEW)

        assert applied is False
        assert current.review_status is ReviewStatus.REJECTED

    @pytest.mark.asyncio
    async def test_missing_record(self, store, sample_record):
        with pytest.raises(RecordNotFoundError):
            await store.compare_and_set_review(sample_record, ReviewStatus.NEEDS_REVIEW)


@pytest.mark.asyncio
async def test_close(store, mock_async_redis):
    await store.close()

    mock_async_redis.aclose.assert_awaited_once()
