"""FastAPI middleware for request tracing and logging."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Scraped / probed constantly; tracing them only adds noise
_QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log line emitted while serving a request.

    - Reuses the caller's X-Request-ID when present, otherwise a UUID4
    - Echoes the id back in the X-Request-ID response header
    - Logs request completion with status and duration
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        quiet = request.url.path in _QUIET_PATHS

        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ):
            start_time = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    "Request failed",
                    exc_info=True,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                raise

            if not quiet:
                logger.info(
                    "Request completed",
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
