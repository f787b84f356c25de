"""Unit tests for the LLM result cache and its use by the LLM tiers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from jobmail_pipeline.llm.exceptions import LLMTimeoutError
from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.output_models import RawModelOutput
from jobmail_pipeline.providers import cache as cache_module
from jobmail_pipeline.providers.cache import (
    InMemoryInferenceCache,
    RedisInferenceCache,
    build_inference_cache,
    content_digest,
)
from jobmail_pipeline.providers.exceptions import ProviderTimeoutError
from jobmail_pipeline.providers.factory import build_prompt_builder, build_providers
from jobmail_pipeline.providers.llm_providers import SingleStageLLMProvider, TwoStageLLMProvider

ANSWER = RawModelOutput(is_job_related=True, company="Acme", position="Data Analyst", status="Interview")


@pytest.fixture
def prompt_builder(test_settings):
    return build_prompt_builder(test_settings)


@pytest.fixture
def original():
    return EmailEvidence(
        subject="Interview invitation - Data Analyst",
        body_plaintext="Hi Jane, we would like to schedule an interview with you.",
        from_address="Acme Recruiting <jobs@acme.com>",
    )


@pytest.fixture
def clock(monkeypatch):
    """Controllable monotonic clock for the in-memory cache."""
    now = {"value": 1000.0}
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: now["value"]))
    return now


class TestContentDigest:
    def test_same_content_same_digest(self, original):
        resent = original.model_copy(update={"from_address": "acme recruiting <JOBS@acme.com> "})

        assert content_digest(resent) == content_digest(original)

    def test_subject_changes_digest(self, original):
        other = original.model_copy(update={"subject": "Offer - Data Analyst"})

        assert content_digest(other) != content_digest(original)

    def test_only_body_prefix_counts(self, original):
        long_body = "x" * 1000
        first = original.model_copy(update={"body_plaintext": long_body + " signature A"})
        second = original.model_copy(update={"body_plaintext": long_body + " signature B"})

        assert content_digest(first, body_chars=1000) == content_digest(second, body_chars=1000)


class TestInMemoryInferenceCache:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, clock):
        cache = InMemoryInferenceCache(ttl_seconds=60)

        assert await cache.get("k") is None
        await cache.set("k", ANSWER)

        assert await cache.get("k") == ANSWER

    @pytest.mark.asyncio
    async def test_entry_expires(self, clock):
        cache = InMemoryInferenceCache(ttl_seconds=60)
        await cache.set("k", ANSWER)

        clock["value"] += 61

        assert await cache.get("k") is None
        assert cache.entries == {}

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemoryInferenceCache(ttl_seconds=0)


class TestRedisInferenceCache:
    @pytest.mark.asyncio
    async def test_set_uses_ttl(self, mock_async_redis):
        cache = RedisInferenceCache(mock_async_redis, "jobmail", ttl_seconds=3600)

        await cache.set("two_stage:m:abc", ANSWER)

        mock_async_redis.set.assert_awaited_once_with(
            "jobmail:llm_cache:two_stage:m:abc", ANSWER.model_dump_json(), ex=3600
        )

    @pytest.mark.asyncio
    async def test_hit(self, mock_async_redis):
        mock_async_redis.get.return_value = ANSWER.model_dump_json()
        cache = RedisInferenceCache(mock_async_redis, "jobmail", ttl_seconds=3600)

        assert await cache.get("two_stage:m:abc") == ANSWER
        mock_async_redis.get.assert_awaited_once_with("jobmail:llm_cache:two_stage:m:abc")

    @pytest.mark.asyncio
    async def test_expired_or_missing_is_miss(self, mock_async_redis):
        cache = RedisInferenceCache(mock_async_redis, "jobmail", ttl_seconds=3600)

        assert await cache.get("two_stage:m:abc") is None

    @pytest.mark.asyncio
    async def test_redis_errors_degrade_to_miss(self, mock_async_redis):
        mock_async_redis.get.side_effect = RedisConnectionError("Connection refused")
        mock_async_redis.set.side_effect = RedisConnectionError("Connection refused")
        cache = RedisInferenceCache(mock_async_redis, "jobmail", ttl_seconds=3600)

        assert await cache.get("k") is None
        await cache.set("k", ANSWER)


class TestCachedLLMTiers:
    @pytest.mark.asyncio
    async def test_resent_copy_skips_inference(self, mock_llm_client, mock_llm_response, prompt_builder, original):
        mock_llm_client.generate.side_effect = [
            mock_llm_response('{"is_job": true}'),
            mock_llm_response('{"company": "Acme", "position": "Data Analyst", "status": "Interview"}'),
        ]
        provider = TwoStageLLMProvider(
            mock_llm_client, prompt_builder, "llama3.1:8b", 0.95, cache=InMemoryInferenceCache(ttl_seconds=60)
        )

        first = await provider.classify(original)
        second = await provider.classify(original.model_copy())

        assert second == first
        assert mock_llm_client.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_different_content_misses(self, mock_llm_client, mock_llm_response, prompt_builder, original):
        mock_llm_client.generate.side_effect = [
            mock_llm_response('{"is_job_related": false, "company": null, "position": null, "status": null}'),
            mock_llm_response('{"is_job_related": false, "company": null, "position": null, "status": null}'),
        ]
        provider = SingleStageLLMProvider(
            mock_llm_client, prompt_builder, "qwen2.5:7b", 0.8, cache=InMemoryInferenceCache(ttl_seconds=60)
        )

        await provider.classify(original)
        await provider.classify(original.model_copy(update={"subject": "Weekly digest"}))

        assert mock_llm_client.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_expired_entry_regenerates(
        self, mock_llm_client, mock_llm_response, prompt_builder, original, clock
    ):
        combined = '{"is_job_related": true, "company": "Acme", "position": null, "status": "Applied"}'
        mock_llm_client.generate.side_effect = [mock_llm_response(combined), mock_llm_response(combined)]
        provider = SingleStageLLMProvider(
            mock_llm_client, prompt_builder, "qwen2.5:7b", 0.8, cache=InMemoryInferenceCache(ttl_seconds=60)
        )

        await provider.classify(original)
        clock["value"] += 120
        await provider.classify(original)

        assert mock_llm_client.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_failures_not_cached(self, mock_llm_client, mock_llm_response, prompt_builder, original):
        cache = InMemoryInferenceCache(ttl_seconds=60)
        mock_llm_client.generate.side_effect = LLMTimeoutError("Request timeout after 60s")
        provider = TwoStageLLMProvider(mock_llm_client, prompt_builder, "llama3.1:8b", 0.95, cache=cache)

        with pytest.raises(ProviderTimeoutError):
            await provider.classify(original)

        assert cache.entries == {}

    @pytest.mark.asyncio
    async def test_tiers_do_not_share_entries(self, mock_llm_client, prompt_builder, original):
        cache = InMemoryInferenceCache(ttl_seconds=60)
        two_stage = TwoStageLLMProvider(mock_llm_client, prompt_builder, "llama3.1:8b", 0.95, cache=cache)
        single_stage = SingleStageLLMProvider(mock_llm_client, prompt_builder, "qwen2.5:7b", 0.8, cache=cache)

        assert cache.key_for(two_stage.name, two_stage.model, original) != cache.key_for(
            single_stage.name, single_stage.model, original
        )


class TestBuildInferenceCache:
    def test_memory_backend(self, test_settings):
        cache = build_inference_cache(test_settings)

        assert isinstance(cache, InMemoryInferenceCache)
        assert cache.ttl_seconds == test_settings.LLM_CACHE_TTL_SECONDS

    def test_redis_backend(self, test_settings, monkeypatch):
        client = AsyncMock()
        monkeypatch.setattr(cache_module.RedisClient, "get_async_client", classmethod(lambda cls, s: client))

        cache = build_inference_cache(test_settings.model_copy(update={"STORAGE_BACKEND": "redis"}))

        assert isinstance(cache, RedisInferenceCache)
        assert cache.redis is client
        assert cache.key_prefix == "jobmail:llm_cache:"

    def test_disabled(self, test_settings):
        assert build_inference_cache(test_settings.model_copy(update={"LLM_CACHE_ENABLED": False})) is None

    def test_factory_shares_cache_across_llm_tiers(self, test_settings, mock_llm_client):
        settings = test_settings.model_copy(update={"PROVIDER_ORDER": ["two_stage", "single_stage"]})

        providers = build_providers(settings, llm_client=mock_llm_client)

        assert providers[0].cache is not None
        assert providers[0].cache is providers[1].cache
