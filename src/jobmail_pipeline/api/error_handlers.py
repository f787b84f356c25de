"""
FastAPI exception handlers for structured error responses.

Maps domain exceptions to appropriate HTTP status codes and formats.
"""

from datetime import datetime, timezone

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from jobmail_pipeline.persistence.exceptions import RecordNotFoundError, StorageError
from jobmail_pipeline.review.exceptions import InvalidReviewTransition

logger = structlog.get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def record_not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    """
    Handle unknown record ids.

    Maps to 404 Not Found.
    """
    logger.info("Record not found", record_id=exc.record_id)

    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "record_not_found",
            "message": exc.message,
            "details": exc.details,
            "timestamp": _timestamp(),
        },
    )


async def invalid_review_transition_handler(request: Request, exc: InvalidReviewTransition) -> JSONResponse:
    """
    Handle review decisions on records that are not waiting for review.

    Maps to 409 Conflict; the body carries the record's current status.

    Args:
        request: FastAPI request
        exc: InvalidReviewTransition instance

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": "invalid_review_transition",
            "message": exc.message,
            "details": exc.details,
            "timestamp": _timestamp(),
        },
    )


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """
    Handle storage outages outside ingestion (reads, review writes).

    Maps to 503 Service Unavailable (temporary failure).
    """
    logger.error("Storage error", error=exc.message, details=exc.details)

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": "storage_unavailable",
            "message": "Storage backend is unavailable, retry later",
            "timestamp": _timestamp(),
        },
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle invalid request bodies / parameters.

    Maps to 400 Bad Request (client error).
    """
    errors = exc.errors() if hasattr(exc, "errors") else []
    logger.warning("Invalid request format", errors=errors)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_request",
            "message": "Request validation failed",
            "details": {"errors": _jsonable_errors(errors)},
            "timestamp": _timestamp(),
        },
    )


def _jsonable_errors(errors: list) -> list[dict]:
    # ctx may hold exception instances that JSONResponse cannot encode
    return [
        {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")}
        for err in errors
    ]


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "timestamp": _timestamp(),
        },
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    RecordNotFoundError: record_not_found_handler,
    InvalidReviewTransition: invalid_review_transition_handler,
    StorageError: storage_error_handler,
    RequestValidationError: request_validation_error_handler,
    PydanticValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
