"""
FastAPI application entry point for the Job Mail Pipeline.
"""

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from jobmail_pipeline.api.dependencies import get_llm_client, get_orchestrator, get_review_gate, get_store
from jobmail_pipeline.api.error_handlers import EXCEPTION_HANDLERS
from jobmail_pipeline.api.middleware import RequestTracingMiddleware
from jobmail_pipeline.api.routes_async import router as async_router
from jobmail_pipeline.api.routes_sync import health_router
from jobmail_pipeline.api.routes_sync import router as sync_router
from jobmail_pipeline.config import settings
from jobmail_pipeline.logging_config import configure_logging
from jobmail_pipeline.persistence import RedisClient, StorageError

# Configure structured logging before any other imports
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Job email classification, normalization and review queue",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

# Register exception handlers
for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

# Include routers
app.include_router(health_router, tags=["health"])
app.include_router(sync_router, prefix=API_PREFIX, tags=["pipeline"])
if settings.ENABLE_ASYNC_API:
    app.include_router(async_router, prefix=f"{API_PREFIX}/ingest", tags=["async"])


@app.on_event("startup")
async def startup():
    """Application startup - log configuration and seed the queue gauge."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        storage_backend=settings.STORAGE_BACKEND,
        provider_order=settings.PROVIDER_ORDER,
    )

    try:
        stats = await get_review_gate(get_store(), settings).stats()
        logger.info("Review queue loaded", by_status=stats.by_status)
    except StorageError as e:
        logger.error("Storage unavailable at startup", error=e.message)

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown():
    """Application shutdown - close the provider chain and storage pools."""
    logger.info("Application shutdown")

    if get_orchestrator.cache_info().currsize:
        await get_orchestrator().close()
    elif get_llm_client.cache_info().currsize:
        await get_llm_client().close()
    if get_store.cache_info().currsize:
        await get_store().close()
    await RedisClient.close_async_pool()

    logger.info("Application shutdown complete")


# Prometheus metrics instrumentation
if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jobmail_pipeline.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
