"""
Persistence layer: processing records, dedup log, and promoted jobs.
"""

from jobmail_pipeline.config import Settings
from jobmail_pipeline.persistence.base import ProcessingStore, StorageTransaction, TransactionState
from jobmail_pipeline.persistence.exceptions import (
    RecordNotFoundError,
    StorageError,
    TransactionStateError,
)
from jobmail_pipeline.persistence.memory import InMemoryProcessingStore
from jobmail_pipeline.persistence.redis_client import RedisClient
from jobmail_pipeline.persistence.repository import RedisProcessingStore


def build_store(settings: Settings) -> ProcessingStore:
    """Create the store selected by settings.STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryProcessingStore(reservation_ttl_seconds=settings.RESERVATION_TTL_SECONDS)
    return RedisProcessingStore(RedisClient.get_async_client(settings), settings)


__all__ = [
    "InMemoryProcessingStore",
    "ProcessingStore",
    "RecordNotFoundError",
    "RedisClient",
    "RedisProcessingStore",
    "StorageError",
    "StorageTransaction",
    "TransactionState",
    "TransactionStateError",
    "build_store",
]
