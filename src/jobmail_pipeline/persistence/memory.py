"""
In-process processing store.

Used for local runs (STORAGE_BACKEND=memory) and tests. Same semantics as
the Redis store: transactions apply all buffered writes under one lock, the
dedup log is append-only, and reservations are exclusive.
"""

import asyncio
import time
from typing import Optional

import structlog

from jobmail_pipeline.models.enums import ReviewStatus
from jobmail_pipeline.models.records import JobRecord, ProcessingRecord, ReviewStats, SyncMarker
from jobmail_pipeline.persistence.base import ProcessingStore, StorageTransaction
from jobmail_pipeline.persistence.exceptions import RecordNotFoundError

logger = structlog.get_logger(__name__)


class InMemoryTransaction(StorageTransaction):
    def __init__(self, store: "InMemoryProcessingStore"):
        super().__init__()
        self._store = store

    async def _commit(self) -> None:
        async with self._store.lock:
            self._store._apply(self.records, self.markers, self.jobs)
        logger.debug("In-memory transaction committed", records=len(self.records), jobs=len(self.jobs))


class InMemoryProcessingStore(ProcessingStore):
    """
    Dict-backed ProcessingStore.

    Attributes:
        records: record_id -> ProcessingRecord
        markers: (message_id, account_id) -> SyncMarker
        sync_log: Markers in insertion order
        jobs: job_id -> JobRecord
    """

    def __init__(self, reservation_ttl_seconds: float = 600):
        self.records: dict[str, ProcessingRecord] = {}
        self.markers: dict[tuple[str, str], SyncMarker] = {}
        self.sync_log: list[SyncMarker] = []
        self.jobs: dict[str, JobRecord] = {}
        self.reservations: dict[tuple[str, str], float] = {}
        self.reservation_ttl = reservation_ttl_seconds
        self.lock = asyncio.Lock()

    def _apply(
        self,
        records: list[ProcessingRecord],
        markers: list[SyncMarker],
        jobs: list[JobRecord],
    ) -> None:
        """Apply a batch of writes. Callers hold the lock."""
        for record in records:
            self.records[record.record_id] = record
        for marker in markers:
            key = (marker.message_id, marker.account_id)
            if key not in self.markers:
                self.markers[key] = marker
                self.sync_log.append(marker)
        for job in jobs:
            self.jobs[job.job_id] = job

    def begin_transaction(self) -> InMemoryTransaction:
        return InMemoryTransaction(self)

    async def exists(self, message_id: str, account_id: str) -> bool:
        return (message_id, account_id) in self.markers

    async def reserve(self, message_id: str, account_id: str) -> bool:
        key = (message_id, account_id)
        async with self.lock:
            if key in self.markers:
                return False
            expires_at = self.reservations.get(key)
            if expires_at is not None and expires_at > time.monotonic():
                return False
            self.reservations[key] = time.monotonic() + self.reservation_ttl
            return True

    async def release(self, message_id: str, account_id: str) -> None:
        async with self.lock:
            self.reservations.pop((message_id, account_id), None)

    async def get_record(self, record_id: str) -> Optional[ProcessingRecord]:
        return self.records.get(record_id)

    async def list_records(
        self,
        review_status: Optional[ReviewStatus] = None,
        account_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[ProcessingRecord]:
        matches = [
            record
            for record in self.records.values()
            if (review_status is None or record.review_status == review_status)
            and (account_id is None or record.account_id == account_id)
        ]
        matches.sort(key=lambda record: record.created_at)
        return matches[: max(limit, 0)]

    async def count_records(self) -> int:
        return len(self.records)

    async def compare_and_set_review(
        self,
        updated: ProcessingRecord,
        expected_status: ReviewStatus,
        job: Optional[JobRecord] = None,
    ) -> tuple[bool, ProcessingRecord]:
        async with self.lock:
            current = self.records.get(updated.record_id)
            if current is None:
                raise RecordNotFoundError(updated.record_id)
            if current.review_status != expected_status:
                return False, current
            self._apply([updated], [], [job] if job is not None else [])
            return True, updated

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        return self.jobs.get(job_id)

    async def stats(self, account_id: Optional[str] = None) -> ReviewStats:
        records = [r for r in self.records.values() if account_id is None or r.account_id == account_id]
        by_status = {status.value: 0 for status in ReviewStatus}
        for record in records:
            by_status[record.review_status.value] += 1
        job_related = sum(1 for r in records if r.is_job_related)
        return ReviewStats(
            by_status=by_status,
            job_related=job_related,
            not_job_related=len(records) - job_related,
            jobs_promoted=sum(1 for j in self.jobs.values() if account_id is None or j.account_id == account_id),
        )
