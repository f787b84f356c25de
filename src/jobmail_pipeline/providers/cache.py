"""
Content-addressed cache for LLM tier results.

A forwarded or re-sent copy of an email arrives under a new message id, so
the dedup log does not catch it. Keying the model's answer by a hash of the
sender, subject and leading body text lets such copies skip inference.

Entries are RawModelOutput JSON. Cache failures never fail a tier: a read
error is a miss and a write error is dropped with a warning.
"""

import hashlib
import time
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from jobmail_pipeline.config import Settings
from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.output_models import RawModelOutput
from jobmail_pipeline.persistence.redis_client import RedisClient

logger = structlog.get_logger(__name__)


def content_digest(evidence: EmailEvidence, body_chars: int = 1000) -> str:
    """SHA-256 over sender, subject and the first body_chars of the body."""
    canonical = "\n".join(
        [
            evidence.from_address.strip().lower(),
            evidence.subject.strip(),
            evidence.body_plaintext[:body_chars],
        ]
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class InferenceCache(ABC):
    """Stores one RawModelOutput per (tier, model, content digest)."""

    def __init__(self, ttl_seconds: int, body_chars: int = 1000):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.body_chars = body_chars

    def key_for(self, tier: str, model: str, evidence: EmailEvidence) -> str:
        return f"{tier}:{model}:{content_digest(evidence, self.body_chars)}"

    @abstractmethod
    async def get(self, key: str) -> Optional[RawModelOutput]:
        """Cached output, or None on a miss."""

    @abstractmethod
    async def set(self, key: str, output: RawModelOutput) -> None:
        """Store output for ttl_seconds."""


class InMemoryInferenceCache(InferenceCache):
    """Process-local cache; entries expire lazily on read."""

    def __init__(self, ttl_seconds: int, body_chars: int = 1000):
        super().__init__(ttl_seconds, body_chars)
        self.entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[RawModelOutput]:
        entry = self.entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= time.monotonic():
            del self.entries[key]
            return None
        return RawModelOutput.model_validate_json(payload)

    async def set(self, key: str, output: RawModelOutput) -> None:
        self.entries[key] = (time.monotonic() + self.ttl_seconds, output.model_dump_json())


class RedisInferenceCache(InferenceCache):
    """
    Redis-backed cache shared by every worker.

    Keys: "{prefix}:llm_cache:{tier}:{model}:{sha256}", expiring via SET EX.
    """

    def __init__(self, redis_client: AsyncRedis, prefix: str, ttl_seconds: int, body_chars: int = 1000):
        super().__init__(ttl_seconds, body_chars)
        self.redis = redis_client
        self.key_prefix = f"{prefix}:llm_cache:"

    async def get(self, key: str) -> Optional[RawModelOutput]:
        try:
            payload = await self.redis.get(self.key_prefix + key)
        except RedisError as e:
            logger.warning("LLM cache read failed", error=str(e))
            return None
        if payload is None:
            return None
        return RawModelOutput.model_validate_json(payload)

    async def set(self, key: str, output: RawModelOutput) -> None:
        try:
            await self.redis.set(self.key_prefix + key, output.model_dump_json(), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("LLM cache write failed", error=str(e))


def build_inference_cache(settings: Settings) -> Optional[InferenceCache]:
    """
    Cache matching the storage backend, or None when caching is disabled.

    Args:
        settings: Application settings (LLM_CACHE_*, STORAGE_BACKEND)

    Returns:
        InferenceCache instance or None
    """
    if not settings.LLM_CACHE_ENABLED:
        return None
    if settings.STORAGE_BACKEND == "redis":
        return RedisInferenceCache(
            RedisClient.get_async_client(settings),
            settings.REDIS_KEY_PREFIX,
            settings.LLM_CACHE_TTL_SECONDS,
            settings.LLM_CACHE_BODY_CHARS,
        )
    return InMemoryInferenceCache(settings.LLM_CACHE_TTL_SECONDS, settings.LLM_CACHE_BODY_CHARS)
