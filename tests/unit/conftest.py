"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without external dependencies.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from jobmail_pipeline.models.llm_models import LLMGenerationResponse
from jobmail_pipeline.persistence.memory import InMemoryProcessingStore
from jobmail_pipeline.review.gate import ReviewGate


@pytest.fixture
def mock_async_redis():
    """Mock AsyncRedis client for unit tests (async)."""
    mock = AsyncMock()
    mock.set = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.mget = AsyncMock(return_value=[])
    mock.delete = AsyncMock(return_value=1)
    mock.exists = AsyncMock(return_value=0)
    mock.zcard = AsyncMock(return_value=0)
    mock.zrange = AsyncMock(return_value=[])
    # pipeline() is a plain method returning the pipeline object
    mock.pipeline = MagicMock()
    return mock


@pytest.fixture
def mock_llm_response():
    """Factory for LLMGenerationResponse with the given reply text."""
    def _create(content: str) -> LLMGenerationResponse:
        return LLMGenerationResponse(
            content=content,
            model_version="llama3.1:8b",
            finish_reason="stop",
            prompt_tokens=400,
            completion_tokens=12,
            latency_ms=150,
        )

    return _create


@pytest.fixture
def mock_llm_client():
    """Mock BaseLLMClient for unit tests; set generate.side_effect per test."""
    mock = AsyncMock()
    mock.generate = AsyncMock()
    mock.health_check = AsyncMock(return_value=True)
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def memory_store():
    """Fresh in-memory processing store."""
    return InMemoryProcessingStore(reservation_ttl_seconds=60)


@pytest.fixture
def review_gate(memory_store):
    """Review gate over the in-memory store with the default threshold."""
    return ReviewGate(memory_store, threshold=0.8)
