"""
Pull-based sync from a mail provider.

The provider integration itself lives outside this package; it only has to
implement MailSource.fetch_batch.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol, Sequence, runtime_checkable

import structlog
from pydantic import BaseModel

from jobmail_pipeline.ingestion.events import PipelineStage
from jobmail_pipeline.ingestion.pipeline import IngestionPipeline
from jobmail_pipeline.models.input_models import EmailInput
from jobmail_pipeline.models.records import IngestSummary

logger = structlog.get_logger(__name__)


@runtime_checkable
class MailSource(Protocol):
    """Mail-provider integration supplying EmailInput windows."""

    async def fetch_batch(
        self,
        account_id: str,
        since_cursor: Optional[datetime],
        max_count: int,
    ) -> Sequence[EmailInput]:
        """Return up to max_count messages received after since_cursor."""
        ...


class SyncResult(BaseModel):
    """Outcome of one sync window."""

    account_id: str
    fetched: int
    summary: IngestSummary
    next_cursor: Optional[datetime] = None


async def sync_account(
    pipeline: IngestionPipeline,
    source: MailSource,
    account_id: str,
    since_cursor: Optional[datetime] = None,
    max_count: int = 500,
) -> SyncResult:
    """
    Fetch one window of messages for an account and ingest it.

    Re-running with the same cursor is safe: already-logged messages are
    counted as duplicates.

    Args:
        pipeline: Ingestion pipeline
        source: Mail-provider integration
        account_id: Account to sync
        since_cursor: Exclusive lower bound on received_at (None = from the start)
        max_count: Window size

    Returns:
        SyncResult whose next_cursor is the newest received_at in the window,
        or since_cursor when the window was empty. When a sub-batch failed,
        the cursor stops just before its oldest message so the next window
        fetches it again
    """
    with structlog.contextvars.bound_contextvars(account_id=account_id):
        pipeline.events.emit(
            PipelineStage.FETCH_STARTED,
            account_id=account_id,
            since_cursor=since_cursor.isoformat() if since_cursor else None,
            max_count=max_count,
        )
        emails = list(await source.fetch_batch(account_id, since_cursor, max_count))

        # Foreign-account messages would poison the dedup key space of this account
        foreign = [e.provider_message_id for e in emails if e.account_id != account_id]
        if foreign:
            logger.warning("Dropping messages from another account", count=len(foreign))
            emails = [e for e in emails if e.account_id == account_id]

        pipeline.events.emit(PipelineStage.PARSE_DONE, account_id=account_id, fetched=len(emails))

        summary = await pipeline.ingest(emails)
        next_cursor = _next_cursor(emails, summary, since_cursor)

    return SyncResult(
        account_id=account_id,
        fetched=len(emails),
        summary=summary,
        next_cursor=next_cursor,
    )


def _next_cursor(
    emails: Sequence[EmailInput],
    summary: IngestSummary,
    since_cursor: Optional[datetime],
) -> Optional[datetime]:
    newest = max((e.received_at for e in emails), default=since_cursor)
    if not summary.errors:
        return newest

    failed_ids = {message_id for failure in summary.errors for message_id in failure.message_ids}
    oldest_failed = min(
        (e.received_at for e in emails if e.provider_message_id in failed_ids),
        default=None,
    )
    if oldest_failed is None:
        return since_cursor
    # since_cursor is exclusive, so step back by the smallest datetime unit
    cursor = oldest_failed - timedelta(microseconds=1)
    logger.warning(
        "Holding cursor before failed sub-batches",
        failed_records=summary.failed_records,
        next_cursor=cursor.isoformat(),
    )
    return cursor
