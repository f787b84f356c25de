"""Build the provider chain from settings."""

from pathlib import Path
from typing import Optional

import structlog

from jobmail_pipeline.config import Settings
from jobmail_pipeline.llm.base_client import BaseLLMClient
from jobmail_pipeline.llm.ollama_client import OllamaClient
from jobmail_pipeline.llm.prompt_builder import PromptBuilder
from jobmail_pipeline.providers.base import ClassificationProvider
from jobmail_pipeline.providers.cache import InferenceCache, build_inference_cache
from jobmail_pipeline.providers.heuristic import EmptyBaselineProvider, KeywordProvider
from jobmail_pipeline.providers.llm_providers import SingleStageLLMProvider, TwoStageLLMProvider

logger = structlog.get_logger(__name__)

_LLM_TIERS = {"two_stage", "single_stage"}


def build_prompt_builder(settings: Settings) -> PromptBuilder:
    return PromptBuilder(
        templates_dir=Path(settings.PROMPT_TEMPLATES_DIR),
        schemas_dir=Path(settings.SCHEMAS_DIR),
        classify_body_chars=settings.CLASSIFY_BODY_CHARS,
        extract_body_chars=settings.EXTRACT_BODY_CHARS,
        temperature=settings.LLM_TEMPERATURE,
        classify_max_tokens=settings.CLASSIFY_MAX_TOKENS,
        extract_max_tokens=settings.EXTRACT_MAX_TOKENS,
    )


def build_providers(
    settings: Settings,
    llm_client: Optional[BaseLLMClient] = None,
    cache: Optional[InferenceCache] = None,
) -> list[ClassificationProvider]:
    """
    Instantiate the tiers named in settings.PROVIDER_ORDER, in order.

    LLM tiers share one client, one prompt builder and one result cache
    (built from settings unless given; none when LLM_CACHE_ENABLED is off).
    The empty baseline is appended when the configured order does not end
    with it, so the chain always has an infallible floor.

    Args:
        settings: Application settings
        llm_client: Client override (defaults to an OllamaClient)
        cache: Result cache override for the LLM tiers

    Returns:
        Ordered provider list
    """
    order = list(settings.PROVIDER_ORDER)
    if order[-1] != "empty_baseline":
        order.append("empty_baseline")

    prompt_builder: Optional[PromptBuilder] = None
    if _LLM_TIERS.intersection(order):
        prompt_builder = build_prompt_builder(settings)
        if llm_client is None:
            llm_client = OllamaClient(base_url=settings.OLLAMA_BASE_URL, timeout=settings.OLLAMA_TIMEOUT)
        if cache is None:
            cache = build_inference_cache(settings)

    providers: list[ClassificationProvider] = []
    for tier in order:
        if tier == "two_stage":
            providers.append(
                TwoStageLLMProvider(
                    llm_client,
                    prompt_builder,
                    settings.TWO_STAGE_MODEL,
                    settings.TWO_STAGE_CONFIDENCE,
                    cache=cache,
                )
            )
        elif tier == "single_stage":
            providers.append(
                SingleStageLLMProvider(
                    llm_client,
                    prompt_builder,
                    settings.SINGLE_STAGE_MODEL,
                    settings.SINGLE_STAGE_CONFIDENCE,
                    cache=cache,
                )
            )
        elif tier == "keyword":
            providers.append(
                KeywordProvider((settings.KEYWORD_CONFIDENCE_MIN, settings.KEYWORD_CONFIDENCE_MAX))
            )
        elif tier == "empty_baseline":
            providers.append(EmptyBaselineProvider(settings.BASELINE_CONFIDENCE))
        else:
            raise ValueError(f"Unknown provider tier: {tier}")

    logger.info("Provider chain built", tiers=[p.name for p in providers])
    return providers
