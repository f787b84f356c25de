"""Storage-layer exceptions."""


class StorageError(Exception):
    """
    Durable storage failed (connection lost, transaction aborted, ...).

    Raised by commit() after the transaction has been rolled back; the
    ingestion pipeline turns it into a SubBatchFailure.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RecordNotFoundError(StorageError):
    """No ProcessingRecord exists under the requested id."""

    def __init__(self, record_id: str):
        super().__init__(f"Processing record not found: {record_id}", {"record_id": record_id})
        self.record_id = record_id


class TransactionStateError(StorageError):
    """A transaction was used after commit() or rollback()."""
