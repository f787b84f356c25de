"""
Progress events emitted by the ingestion pipeline.

Sinks are plain callables taking a PipelineEvent. A failing sink is logged
and otherwise ignored: observability never changes ingestion results.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field

from jobmail_pipeline.models.records import utcnow

logger = structlog.get_logger(__name__)


class PipelineStage(str, Enum):
    FETCH_STARTED = "fetch_started"
    PARSE_DONE = "parse_done"
    CLASSIFY_DONE = "classify_done"
    BATCH_SAVED = "batch_saved"
    BATCH_FAILED = "batch_failed"


class PipelineEvent(BaseModel):
    """One progress notification."""

    model_config = ConfigDict(frozen=True)

    stage: PipelineStage
    account_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=utcnow)


EventSink = Callable[[PipelineEvent], None]


def log_event_sink(event: PipelineEvent) -> None:
    """Default sink: one structured log line per event."""
    log = logger.warning if event.stage is PipelineStage.BATCH_FAILED else logger.info
    log(
        "Pipeline progress",
        stage=event.stage.value,
        account_id=event.account_id,
        **event.details,
    )


class EventEmitter:
    """Fans an event out to every sink, isolating sink failures."""

    def __init__(self, sinks: Optional[Sequence[EventSink]] = None):
        self.sinks: list[EventSink] = list(sinks) if sinks is not None else [log_event_sink]

    def emit(self, stage: PipelineStage, account_id: Optional[str] = None, **details: Any) -> PipelineEvent:
        event = PipelineEvent(stage=stage, account_id=account_id, details=details)
        for sink in self.sinks:
            try:
                sink(event)
            except Exception as e:  # noqa: BLE001 - a broken sink must not fail ingestion
                logger.warning(
                    "Event sink failed",
                    stage=stage.value,
                    sink=getattr(sink, "__name__", repr(sink)),
                    error=str(e),
                )
        return event
