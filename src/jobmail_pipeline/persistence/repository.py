"""
Redis-backed processing store.

Storage Strategy (all keys under settings.REDIS_KEY_PREFIX, "jobmail" by default):
- Records: JSON string per record, key = "jobmail:record:{record_id}"
- Record index: Sorted set "jobmail:records" (score = created_at)
- Status index: Sorted set "jobmail:status:{review_status}"; the needs_review
  set doubles as the review queue
- Relevance index: Sorted sets "jobmail:relevance:job" / "jobmail:relevance:other"
- Per-account copies of every index under "jobmail:account:{account_id}:..."
- Dedup log: "jobmail:synced:{account_id}:{message_id}" (SET NX, never updated)
  plus the append-only list "jobmail:sync_log", pushed only when the marker is new
- Reservations: "jobmail:reserve:{account_id}:{message_id}" with a TTL
- Jobs: "jobmail:job:{job_id}" plus sorted set "jobmail:jobs"

A transaction is one MULTI/EXEC pipeline; review decisions use WATCH on the
record key for compare-and-set.
"""

from typing import Optional

import structlog
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError, WatchError

from jobmail_pipeline.config import Settings
from jobmail_pipeline.models.enums import ReviewStatus
from jobmail_pipeline.models.records import JobRecord, ProcessingRecord, ReviewStats, SyncMarker
from jobmail_pipeline.persistence.base import ProcessingStore, StorageTransaction
from jobmail_pipeline.persistence.exceptions import RecordNotFoundError, StorageError

logger = structlog.get_logger(__name__)

# Appends to the sync log only when the marker is new, so the log never
# holds two entries for one message
INSERT_MARKER_SCRIPT = """
if redis.call("SET", KEYS[1], ARGV[1], "NX") then
    redis.call("RPUSH", KEYS[2], ARGV[1])
    return 1
end
return 0
"""


class RedisTransaction(StorageTransaction):
    """Buffers writes and flushes them in a single MULTI/EXEC."""

    def __init__(self, store: "RedisProcessingStore"):
        super().__init__()
        self._store = store

    async def _commit(self) -> None:
        if self.size == 0:
            return
        try:
            async with self._store.redis.pipeline(transaction=True) as pipe:
                for record in self.records:
                    self._store._queue_record(pipe, record)
                for marker in self.markers:
                    self._store._queue_marker(pipe, marker)
                for job in self.jobs:
                    self._store._queue_job(pipe, job)
                await pipe.execute()
        except RedisError as e:
            logger.error(
                "Redis transaction failed",
                records=len(self.records),
                markers=len(self.markers),
                error=str(e),
            )
            raise StorageError(
                f"Redis transaction failed: {e}",
                {"records": len(self.records), "error_type": type(e).__name__},
            ) from e

        logger.debug("Redis transaction committed", records=len(self.records), jobs=len(self.jobs))


class RedisProcessingStore(ProcessingStore):
    """
    ProcessingStore on Redis.

    Indexes are maintained inside the same MULTI/EXEC as the record write,
    so a record and its index entries are always visible together.
    """

    def __init__(self, redis_client: AsyncRedis, settings: Settings):
        """
        Initialize store.

        Args:
            redis_client: Async Redis client (see RedisClient.get_async_client)
            settings: Application settings
        """
        self.redis = redis_client
        self.prefix = settings.REDIS_KEY_PREFIX
        self.reservation_ttl = settings.RESERVATION_TTL_SECONDS
        self.record_ttl = settings.REDIS_RECORD_TTL_DAYS * 86400

        # Redis key layout
        self.RECORD_PREFIX = f"{self.prefix}:record:"
        self.JOB_PREFIX = f"{self.prefix}:job:"
        self.SYNCED_PREFIX = f"{self.prefix}:synced:"
        self.RESERVE_PREFIX = f"{self.prefix}:reserve:"
        self.SYNC_LOG_KEY = f"{self.prefix}:sync_log"

    # ========================================================================
    # Key helpers
    # ========================================================================

    def _scope(self, account_id: Optional[str] = None) -> str:
        return f"{self.prefix}:account:{account_id}" if account_id else self.prefix

    def _record_key(self, record_id: str) -> str:
        return f"{self.RECORD_PREFIX}{record_id}"

    def _marker_key(self, message_id: str, account_id: str) -> str:
        return f"{self.SYNCED_PREFIX}{account_id}:{message_id}"

    def _reserve_key(self, message_id: str, account_id: str) -> str:
        return f"{self.RESERVE_PREFIX}{account_id}:{message_id}"

    def _index_key(self, review_status: Optional[ReviewStatus], account_id: Optional[str]) -> str:
        scope = self._scope(account_id)
        if review_status is None:
            return f"{scope}:records"
        return f"{scope}:status:{review_status.value}"

    # ========================================================================
    # Write queueing (called on an open pipeline)
    # ========================================================================

    def _queue_record(self, pipe, record: ProcessingRecord) -> None:
        key = self._record_key(record.record_id)
        score = record.created_at.timestamp()

        if self.record_ttl > 0:
            pipe.set(key, record.model_dump_json(), ex=self.record_ttl)
        else:
            pipe.set(key, record.model_dump_json())

        relevance = "job" if record.is_job_related else "other"
        for scope in (self._scope(), self._scope(record.account_id)):
            pipe.zadd(f"{scope}:records", {record.record_id: score})
            # An upsert may move the record between status / relevance sets
            for status in ReviewStatus:
                if status is not record.review_status:
                    pipe.zrem(f"{scope}:status:{status.value}", record.record_id)
            pipe.zadd(f"{scope}:status:{record.review_status.value}", {record.record_id: score})
            pipe.zrem(f"{scope}:relevance:{'other' if relevance == 'job' else 'job'}", record.record_id)
            pipe.zadd(f"{scope}:relevance:{relevance}", {record.record_id: score})

    def _queue_marker(self, pipe, marker: SyncMarker) -> None:
        marker_key = self._marker_key(marker.message_id, marker.account_id)
        pipe.eval(INSERT_MARKER_SCRIPT, 2, marker_key, self.SYNC_LOG_KEY, marker.model_dump_json())

    def _queue_job(self, pipe, job: JobRecord) -> None:
        pipe.set(f"{self.JOB_PREFIX}{job.job_id}", job.model_dump_json())
        score = job.created_at.timestamp()
        for scope in (self._scope(), self._scope(job.account_id)):
            pipe.zadd(f"{scope}:jobs", {job.job_id: score})

    # ========================================================================
    # ProcessingStore
    # ========================================================================

    def begin_transaction(self) -> RedisTransaction:
        return RedisTransaction(self)

    async def exists(self, message_id: str, account_id: str) -> bool:
        try:
            return bool(await self.redis.exists(self._marker_key(message_id, account_id)))
        except RedisError as e:
            raise StorageError(f"Failed to check sync marker: {e}") from e

    async def reserve(self, message_id: str, account_id: str) -> bool:
        reserve_key = self._reserve_key(message_id, account_id)
        try:
            claimed = await self.redis.set(reserve_key, "1", nx=True, ex=self.reservation_ttl)
            if not claimed:
                return False
            # Claim first, then check the log: a committer releases only after its marker is visible
            if await self.redis.exists(self._marker_key(message_id, account_id)):
                await self.redis.delete(reserve_key)
                return False
            return True
        except RedisError as e:
            raise StorageError(f"Failed to reserve message: {e}") from e

    async def release(self, message_id: str, account_id: str) -> None:
        try:
            await self.redis.delete(self._reserve_key(message_id, account_id))
        except RedisError as e:
            # Reservation expires on its own
            logger.warning("Failed to release reservation", message_id=message_id, error=str(e))

    async def get_record(self, record_id: str) -> Optional[ProcessingRecord]:
        try:
            raw = await self.redis.get(self._record_key(record_id))
        except RedisError as e:
            raise StorageError(f"Failed to load record: {e}") from e
        if raw is None:
            return None
        return ProcessingRecord.model_validate_json(raw)

    async def list_records(
        self,
        review_status: Optional[ReviewStatus] = None,
        account_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[ProcessingRecord]:
        if limit <= 0:
            return []
        try:
            record_ids = await self.redis.zrange(self._index_key(review_status, account_id), 0, limit - 1)
            if not record_ids:
                return []
            payloads = await self.redis.mget([self._record_key(rid) for rid in record_ids])
        except RedisError as e:
            raise StorageError(f"Failed to list records: {e}") from e

        # Expired records leave dangling index entries
        return [ProcessingRecord.model_validate_json(raw) for raw in payloads if raw is not None]

    async def count_records(self) -> int:
        try:
            return int(await self.redis.zcard(self._index_key(None, None)))
        except RedisError as e:
            raise StorageError(f"Failed to count records: {e}") from e

    async def compare_and_set_review(
        self,
        updated: ProcessingRecord,
        expected_status: ReviewStatus,
        job: Optional[JobRecord] = None,
    ) -> tuple[bool, ProcessingRecord]:
        key = self._record_key(updated.record_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.get(key)
                if raw is None:
                    raise RecordNotFoundError(updated.record_id)
                current = ProcessingRecord.model_validate_json(raw)
                if current.review_status != expected_status:
                    return False, current

                pipe.multi()
                self._queue_record(pipe, updated)
                if job is not None:
                    self._queue_job(pipe, job)
                await pipe.execute()
                return True, updated
        except WatchError:
            logger.info("Concurrent review write detected", record_id=updated.record_id)
            current = await self.get_record(updated.record_id)
            if current is None:
                raise RecordNotFoundError(updated.record_id)
            return False, current
        except RedisError as e:
            raise StorageError(f"Failed to apply review decision: {e}") from e

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        try:
            raw = await self.redis.get(f"{self.JOB_PREFIX}{job_id}")
        except RedisError as e:
            raise StorageError(f"Failed to load job: {e}") from e
        return JobRecord.model_validate_json(raw) if raw is not None else None

    async def stats(self, account_id: Optional[str] = None) -> ReviewStats:
        scope = self._scope(account_id)
        try:
            pipe = self.redis.pipeline(transaction=False)
            for status in ReviewStatus:
                pipe.zcard(f"{scope}:status:{status.value}")
            pipe.zcard(f"{scope}:relevance:job")
            pipe.zcard(f"{scope}:relevance:other")
            pipe.zcard(f"{scope}:jobs")
            counts = await pipe.execute()
        except RedisError as e:
            raise StorageError(f"Failed to compute stats: {e}") from e

        statuses = list(ReviewStatus)
        return ReviewStats(
            by_status={status.value: int(count) for status, count in zip(statuses, counts)},
            job_related=int(counts[len(statuses)]),
            not_job_related=int(counts[len(statuses) + 1]),
            jobs_promoted=int(counts[len(statuses) + 2]),
        )

    async def close(self) -> None:
        await self.redis.aclose()
