"""
Provider tiers for the fallback chain.

Every provider implements `classify(email) -> ClassificationResult`:
- TwoStageLLMProvider (classify, then extract)
- SingleStageLLMProvider (one combined prompt)
- KeywordProvider (rule-based heuristic)
- EmptyBaselineProvider (conservative floor, never fails)
- CallableProvider (adapter for any opaque inference collaborator)
"""

from jobmail_pipeline.providers.base import CallableProvider, ClassificationProvider
from jobmail_pipeline.providers.exceptions import (
    MalformedOutputError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from jobmail_pipeline.providers.factory import build_providers
from jobmail_pipeline.providers.heuristic import EmptyBaselineProvider, KeywordProvider
from jobmail_pipeline.providers.llm_providers import SingleStageLLMProvider, TwoStageLLMProvider

__all__ = [
    "ClassificationProvider",
    "CallableProvider",
    "TwoStageLLMProvider",
    "SingleStageLLMProvider",
    "KeywordProvider",
    "EmptyBaselineProvider",
    "build_providers",
    "ProviderError",
    "ProviderTimeoutError",
    "MalformedOutputError",
    "ProviderUnavailableError",
]
