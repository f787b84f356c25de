"""
FastAPI dependency injection for the job mail pipeline.

Provides singleton instances of expensive resources (LLM client, provider
chain, store) and factory functions for lightweight per-request components.
Tests replace any of these through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends

from jobmail_pipeline.config import Settings, settings
from jobmail_pipeline.fallback.engine import FallbackOrchestrator
from jobmail_pipeline.ingestion.pipeline import IngestionPipeline
from jobmail_pipeline.llm.base_client import BaseLLMClient
from jobmail_pipeline.llm.ollama_client import OllamaClient
from jobmail_pipeline.persistence import ProcessingStore, build_store
from jobmail_pipeline.providers.factory import build_providers
from jobmail_pipeline.review.gate import ReviewGate


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_llm_client() -> BaseLLMClient:
    """
    Get singleton LLM client with connection pooling.

    Returns:
        OllamaClient instance
    """
    app_settings = get_settings()
    return OllamaClient(
        base_url=app_settings.OLLAMA_BASE_URL,
        timeout=app_settings.OLLAMA_TIMEOUT,
    )


@lru_cache()
def get_orchestrator() -> FallbackOrchestrator:
    """
    Get singleton fallback orchestrator.

    All LLM tiers share the singleton client.

    Returns:
        FallbackOrchestrator over the configured tiers
    """
    app_settings = get_settings()
    return FallbackOrchestrator(
        build_providers(app_settings, llm_client=get_llm_client()),
        timeout_seconds=app_settings.PROVIDER_TIMEOUT_SECONDS,
        failure_penalty=app_settings.FAILURE_CONFIDENCE_PENALTY,
    )


@lru_cache()
def get_store() -> ProcessingStore:
    """
    Get singleton processing store (Redis or in-memory per STORAGE_BACKEND).

    Returns:
        ProcessingStore instance
    """
    return build_store(get_settings())


def get_review_gate(
    store: ProcessingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ReviewGate:
    """
    Create review gate over the shared store.

    Note: ReviewGate is NOT cached because it's lightweight and stateless.

    Args:
        store: Processing store singleton (injected)
        settings: Application settings (injected)

    Returns:
        ReviewGate instance
    """
    return ReviewGate(store, threshold=settings.REVIEW_THRESHOLD)


def get_pipeline(
    orchestrator: FallbackOrchestrator = Depends(get_orchestrator),
    store: ProcessingStore = Depends(get_store),
    review_gate: ReviewGate = Depends(get_review_gate),
    settings: Settings = Depends(get_settings),
) -> IngestionPipeline:
    """
    Create ingestion pipeline with injected dependencies.

    Args:
        orchestrator: Orchestrator singleton (injected)
        store: Processing store singleton (injected)
        review_gate: Review gate (injected)
        settings: Application settings (injected)

    Returns:
        IngestionPipeline instance
    """
    return IngestionPipeline(
        orchestrator,
        store,
        review_gate,
        sub_batch_size=settings.SUB_BATCH_SIZE,
        max_workers=settings.INGEST_WORKERS,
        inference_concurrency=settings.INFERENCE_CONCURRENCY,
    )
