"""
FastAPI API routes and endpoints.

- routes_sync.py: Ingestion, review queue, records, stats, health
- routes_async.py: Celery-backed ingestion (POST /ingest/async, GET /ingest/task/{id})
- dependencies.py: Dependency injection for store, orchestrator, pipeline, etc.
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
"""

from jobmail_pipeline.api import dependencies, error_handlers, models
from jobmail_pipeline.api.routes_async import router as async_router
from jobmail_pipeline.api.routes_sync import health_router
from jobmail_pipeline.api.routes_sync import router as sync_router

__all__ = [
    "sync_router",
    "async_router",
    "health_router",
    "dependencies",
    "error_handlers",
    "models",
]
