"""
Synchronous API routes: ingestion, review queue, records and health.

POST /api/v1/ingest runs the pipeline in-request; for large windows use the
async routes instead.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from jobmail_pipeline.api.dependencies import (
    get_llm_client,
    get_pipeline,
    get_review_gate,
    get_settings,
    get_store,
)
from jobmail_pipeline.api.models import (
    HealthResponse,
    IngestRequest,
    IngestResponse,
    PendingReviewResponse,
    ReviewDecisionRequest,
)
from jobmail_pipeline.config import Settings
from jobmail_pipeline.ingestion.pipeline import IngestionPipeline
from jobmail_pipeline.llm.base_client import BaseLLMClient
from jobmail_pipeline.models.records import ProcessingRecord, ReviewStats
from jobmail_pipeline.persistence.base import ProcessingStore
from jobmail_pipeline.persistence.exceptions import RecordNotFoundError
from jobmail_pipeline.review.gate import ReviewGate

logger = structlog.get_logger(__name__)

router = APIRouter()
health_router = APIRouter()


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Ingest a batch of emails (synchronous)",
    description="""
    Classify, normalize and persist a batch of emails.

    Already-processed messages are skipped and counted as duplicates.
    A storage failure in one sub-batch is reported in `summary.errors`
    (status "partial"); other sub-batches are unaffected.
    """,
    responses={
        200: {"description": "Ingestion completed (possibly partially)"},
        400: {"description": "Invalid request format"},
    },
)
async def ingest_emails(
    request: IngestRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """
    Ingest emails synchronously.

    Args:
        request: Batch of EmailInput
        pipeline: Ingestion pipeline (injected)

    Returns:
        IngestResponse with the summary
    """
    summary = await pipeline.ingest(request.emails)
    return IngestResponse(
        status="partial" if summary.errors else "completed",
        summary=summary,
    )


@router.get(
    "/review",
    response_model=PendingReviewResponse,
    summary="List records waiting for human review",
)
async def list_pending_reviews(
    account_id: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    review_gate: ReviewGate = Depends(get_review_gate),
) -> PendingReviewResponse:
    records = await review_gate.list_pending(account_id=account_id, limit=limit)
    return PendingReviewResponse(count=len(records), records=records)


@router.post(
    "/review/{record_id}/decision",
    response_model=ProcessingRecord,
    summary="Approve or reject a queued record",
    responses={
        200: {"description": "Decision applied"},
        404: {"description": "Record not found"},
        409: {"description": "Record is not waiting for review"},
    },
)
async def decide_review(
    record_id: str,
    request: ReviewDecisionRequest,
    review_gate: ReviewGate = Depends(get_review_gate),
) -> ProcessingRecord:
    """
    Apply a human review decision.

    Approval of a job-related record also creates its job entry.
    """
    return await review_gate.review_decision(record_id, request.decision, reviewer=request.reviewer)


@router.get(
    "/records/{record_id}",
    response_model=ProcessingRecord,
    summary="Get a processing record",
    responses={404: {"description": "Record not found"}},
)
async def get_record(
    record_id: str,
    store: ProcessingStore = Depends(get_store),
) -> ProcessingRecord:
    record = await store.get_record(record_id)
    if record is None:
        raise RecordNotFoundError(record_id)
    return record


@router.get(
    "/stats",
    response_model=ReviewStats,
    summary="Counts per review status",
)
async def get_stats(
    account_id: Optional[str] = Query(default=None),
    review_gate: ReviewGate = Depends(get_review_gate),
) -> ReviewStats:
    return await review_gate.stats(account_id=account_id)


@health_router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Check the health of the pipeline and its dependencies.

    Storage is critical (503 when down). Ollama is not: the keyword and
    baseline tiers keep classification running, so an unreachable model
    server only degrades the service.
    """,
    responses={
        200: {"description": "Healthy or degraded"},
        503: {"description": "Storage unavailable"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    store: ProcessingStore = Depends(get_store),
    llm_client: BaseLLMClient = Depends(get_llm_client),
):
    """
    Check health of all services.

    Returns:
        HealthResponse with service statuses
    """
    services = {}

    try:
        await store.count_records()
        services["storage"] = "ok"
    except Exception as e:  # noqa: BLE001 - report, don't fail the probe
        services["storage"] = f"unreachable ({type(e).__name__})"

    try:
        services["ollama"] = "ok" if await llm_client.health_check() else "unreachable"
    except Exception as e:  # noqa: BLE001
        services["ollama"] = f"unreachable ({type(e).__name__})"

    if all(value == "ok" for value in services.values()):
        health_status, status_code = "healthy", status.HTTP_200_OK
    elif services["storage"] == "ok":
        health_status, status_code = "degraded", status.HTTP_200_OK
    else:
        health_status, status_code = "unhealthy", status.HTTP_503_SERVICE_UNAVAILABLE

    logger.info("Health check", status=health_status, services=services)

    response = HealthResponse(
        status=health_status,
        version=settings.APP_VERSION,
        services=services,
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))
