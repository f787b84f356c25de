"""
Batch ingestion: sub-batched, deduplicated, transactional writes.
"""

from jobmail_pipeline.ingestion.events import (
    EventEmitter,
    EventSink,
    PipelineEvent,
    PipelineStage,
    log_event_sink,
)
from jobmail_pipeline.ingestion.pipeline import IngestionPipeline
from jobmail_pipeline.ingestion.source import MailSource, SyncResult, sync_account

__all__ = [
    "EventEmitter",
    "EventSink",
    "IngestionPipeline",
    "MailSource",
    "PipelineEvent",
    "PipelineStage",
    "SyncResult",
    "log_event_sink",
    "sync_account",
]
