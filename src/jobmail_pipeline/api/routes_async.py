"""
Asynchronous API routes for batch ingestion.

These endpoints hand the batch to a Celery worker and are suitable for
large sync windows.
"""

import structlog
from celery.result import AsyncResult
from fastapi import APIRouter, HTTPException, status

from jobmail_pipeline.api.models import IngestRequest, IngestSubmitResponse, TaskStatusResponse
from jobmail_pipeline.models.records import IngestSummary
from jobmail_pipeline.tasks.celery_app import celery_app
from jobmail_pipeline.tasks.ingest_tasks import ingest_batch_task

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/async",
    response_model=IngestSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a batch for ingestion (asynchronous)",
    description="""
    Queue a batch of emails for ingestion by a Celery worker.

    Returns a task ID that can be used to poll for the ingest summary.
    """,
    responses={
        202: {"description": "Batch submitted successfully"},
        400: {"description": "Invalid request format"},
    },
)
async def submit_ingest(request: IngestRequest) -> IngestSubmitResponse:
    """
    Submit batch for async ingestion.

    Args:
        request: Batch of EmailInput (validated before queueing)

    Returns:
        IngestSubmitResponse with the task ID
    """
    payload = [email.model_dump(mode="json") for email in request.emails]
    result = ingest_batch_task.delay(payload)  # type: ignore[attr-defined]

    logger.info("Ingest batch submitted", task_id=result.id, email_count=len(payload))

    return IngestSubmitResponse(task_id=result.id, email_count=len(payload))


@router.get(
    "/task/{task_id}",
    response_model=TaskStatusResponse,
    summary="Check ingest task status",
    description="""
    Possible states:
    - PENDING: Task is waiting in queue
    - STARTED: Task is being processed
    - SUCCESS: Task completed (summary available)
    - FAILURE: Task failed (error available)
    - RETRY: Task is being retried
    """,
    responses={
        200: {"description": "Task status retrieved"},
        404: {"description": "Task not found"},
    },
)
async def get_task_status(task_id: str) -> TaskStatusResponse:
    """
    Get status of an ingest task.

    Args:
        task_id: Celery task ID

    Returns:
        TaskStatusResponse with current status and summary (if available)
    """
    async_result = AsyncResult(task_id, app=celery_app)
    state = async_result.state

    if state == "PENDING" and not async_result.info:
        # PENDING is also Celery's answer for unknown ids
        logger.warning("Task not found", task_id=task_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )

    if state == "SUCCESS":
        return TaskStatusResponse(
            task_id=task_id,
            status=state,
            result=IngestSummary.model_validate(async_result.result),
        )

    if state == "FAILURE":
        error_info = str(async_result.info) if async_result.info else "Unknown error"
        logger.warning("Task status checked (FAILURE)", task_id=task_id, error=error_info)
        return TaskStatusResponse(task_id=task_id, status=state, error=error_info)

    return TaskStatusResponse(task_id=task_id, status=state)
