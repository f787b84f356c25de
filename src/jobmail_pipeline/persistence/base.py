"""
Storage contract for the ingestion pipeline and the review gate.

A ProcessingStore hands out StorageTransactions. Writes are buffered on the
transaction and become visible together on commit(), or not at all.

Usage:
    async with store.begin_transaction() as tx:
        tx.upsert_processing_record(record)
        tx.insert_sync_marker(marker)
    # committed here; rolled back if the block raised
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from jobmail_pipeline.models.enums import ReviewStatus
from jobmail_pipeline.models.records import (
    JobRecord,
    ProcessingRecord,
    ReviewStats,
    SyncMarker,
    record_id_for,
)
from jobmail_pipeline.persistence.exceptions import TransactionStateError


class TransactionState(str, Enum):
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class StorageTransaction(ABC):
    """
    Buffered, all-or-nothing batch of writes.

    Buffering methods are synchronous; only commit() and rollback() touch
    storage.
    """

    def __init__(self) -> None:
        self.state = TransactionState.OPEN
        self.records: list[ProcessingRecord] = []
        self.markers: list[SyncMarker] = []
        self.jobs: list[JobRecord] = []

    def _ensure_open(self) -> None:
        if self.state is not TransactionState.OPEN:
            raise TransactionStateError(f"Transaction already {self.state.value}")

    def upsert_processing_record(self, record: ProcessingRecord) -> None:
        self._ensure_open()
        self.records.append(record)

    def insert_sync_marker(self, marker: SyncMarker) -> None:
        self._ensure_open()
        self.markers.append(marker)

    def insert_job(self, job: JobRecord) -> None:
        self._ensure_open()
        self.jobs.append(job)

    @property
    def size(self) -> int:
        return len(self.records) + len(self.markers) + len(self.jobs)

    async def commit(self) -> None:
        """
        Persist every buffered write atomically.

        Raises:
            StorageError: Nothing was persisted; the transaction is rolled back
            TransactionStateError: Already committed or rolled back
        """
        self._ensure_open()
        try:
            await self._commit()
        except Exception:
            self.state = TransactionState.ROLLED_BACK
            raise
        self.state = TransactionState.COMMITTED

    async def rollback(self) -> None:
        """Discard buffered writes. No-op once the transaction is closed."""
        if self.state is not TransactionState.OPEN:
            return
        self.records.clear()
        self.markers.clear()
        self.jobs.clear()
        self.state = TransactionState.ROLLED_BACK

    @abstractmethod
    async def _commit(self) -> None:
        """Backend-specific atomic write of the buffers."""

    async def __aenter__(self) -> "StorageTransaction":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            await self.rollback()
        elif self.state is TransactionState.OPEN:
            await self.commit()


class ProcessingStore(ABC):
    """
    Durable storage for records, the dedup log, and promoted jobs.

    The dedup log is keyed by (message_id, account_id). reserve() is the
    atomic check-and-claim used before any inference work: it succeeds for
    exactly one caller per key, and never for a key already in the log.
    """

    @abstractmethod
    def begin_transaction(self) -> StorageTransaction:
        """Open a buffered transaction."""

    @abstractmethod
    async def exists(self, message_id: str, account_id: str) -> bool:
        """True when the dedup log already holds this message."""

    @abstractmethod
    async def reserve(self, message_id: str, account_id: str) -> bool:
        """
        Claim a message for processing.

        Returns:
            True if the caller now owns the key; False if it is already
            logged or claimed by a concurrent ingestion
        """

    @abstractmethod
    async def release(self, message_id: str, account_id: str) -> None:
        """Drop a claim (after commit, or after rollback so a retry can claim again)."""

    @abstractmethod
    async def get_record(self, record_id: str) -> Optional[ProcessingRecord]:
        """Point lookup by record id."""

    @abstractmethod
    async def list_records(
        self,
        review_status: Optional[ReviewStatus] = None,
        account_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[ProcessingRecord]:
        """Records oldest-first, optionally filtered."""

    @abstractmethod
    async def count_records(self) -> int:
        """Total persisted ProcessingRecords."""

    @abstractmethod
    async def compare_and_set_review(
        self,
        updated: ProcessingRecord,
        expected_status: ReviewStatus,
        job: Optional[JobRecord] = None,
    ) -> tuple[bool, ProcessingRecord]:
        """
        Atomically replace a record if its review status is still expected_status.

        The job (if any) is written in the same atomic step.

        Returns:
            (applied, current record after the call)

        Raises:
            RecordNotFoundError: No record under updated.record_id
        """

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        """Point lookup of a promoted job."""

    @abstractmethod
    async def stats(self, account_id: Optional[str] = None) -> ReviewStats:
        """Counts per review status and job-related totals."""

    async def get_record_by_message(self, message_id: str, account_id: str) -> Optional[ProcessingRecord]:
        return await self.get_record(record_id_for(message_id, account_id))

    async def list_pending(self, account_id: Optional[str] = None, limit: int = 50) -> list[ProcessingRecord]:
        """Records waiting for human review, oldest first."""
        return await self.list_records(ReviewStatus.NEEDS_REVIEW, account_id=account_id, limit=limit)

    async def close(self) -> None:
        """Release connections. Called once at shutdown."""
