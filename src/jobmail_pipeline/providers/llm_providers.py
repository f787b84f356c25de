"""
LLM-backed provider tiers.

TwoStageLLMProvider asks a cheap yes/no question first and only runs the
extraction prompt for job-related mail. SingleStageLLMProvider answers
everything in one reply and serves as the next tier down.

With an InferenceCache attached, a successful answer is stored under a hash
of the email content, so a re-sent copy under a new message id reuses it.
"""

from typing import Optional

import structlog

from jobmail_pipeline.llm.base_client import BaseLLMClient
from jobmail_pipeline.llm.exceptions import (
    LLMClientError,
    LLMSchemaViolationError,
    LLMTimeoutError,
)
from jobmail_pipeline.llm.output_parser import ModelOutputParser
from jobmail_pipeline.llm.prompt_builder import PromptBuilder
from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.llm_models import ClassificationReply, CombinedReply, ExtractionReply
from jobmail_pipeline.models.output_models import RawModelOutput
from jobmail_pipeline.monitoring.metrics import llm_cache_lookups_total
from jobmail_pipeline.providers.base import ClassificationProvider
from jobmail_pipeline.providers.cache import InferenceCache
from jobmail_pipeline.providers.exceptions import (
    MalformedOutputError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

logger = structlog.get_logger(__name__)


class _LLMProvider(ClassificationProvider):
    """Shared plumbing: prompt -> generate -> parse, with error mapping."""

    def __init__(
        self,
        client: BaseLLMClient,
        prompt_builder: PromptBuilder,
        model: str,
        confidence: float,
        cache: Optional[InferenceCache] = None,
    ):
        super().__init__((confidence, confidence))
        self.client = client
        self.prompt_builder = prompt_builder
        self.model = model
        self.cache = cache
        self.parsers = {
            kind: ModelOutputParser(schema) for kind, schema in prompt_builder.schemas.items()
        }

    async def infer(self, evidence: EmailEvidence) -> RawModelOutput:
        if self.cache is None:
            return await self._generate(evidence)

        key = self.cache.key_for(self.name, self.model, evidence)
        cached = await self.cache.get(key)
        if cached is not None:
            llm_cache_lookups_total.labels(tier=self.name, result="hit").inc()
            logger.debug("LLM cache hit", tier=self.name, model=self.model)
            return cached

        llm_cache_lookups_total.labels(tier=self.name, result="miss").inc()
        output = await self._generate(evidence)
        await self.cache.set(key, output)
        return output

    async def _generate(self, evidence: EmailEvidence) -> RawModelOutput:
        raise NotImplementedError

    async def _ask(self, kind: str, evidence: EmailEvidence, reply_cls):
        request = self.prompt_builder.build_request(kind, evidence, self.model)
        try:
            response = await self.client.generate(request)
            return self.parsers[kind].parse(response.content, reply_cls)
        except LLMSchemaViolationError as e:
            raise MalformedOutputError(e.message, tier=self.name, details=e.details) from e
        except LLMTimeoutError as e:
            raise ProviderTimeoutError(e.message, tier=self.name, details=e.details) from e
        except LLMClientError as e:
            raise ProviderUnavailableError(e.message, tier=self.name, details=e.details) from e

    async def close(self) -> None:
        await self.client.close()


class TwoStageLLMProvider(_LLMProvider):
    """
    Two prompts: classify ({"is_job": bool}), then extract for job mail only.

    Non-job mail costs a single short generation.
    """

    name = "two_stage"

    async def _generate(self, evidence: EmailEvidence) -> RawModelOutput:
        verdict: ClassificationReply = await self._ask("classify", evidence, ClassificationReply)
        if not verdict.is_job:
            return RawModelOutput(is_job_related=False)

        fields: ExtractionReply = await self._ask("extract", evidence, ExtractionReply)
        logger.debug(
            "Two-stage extraction complete",
            model=self.model,
            has_company=fields.company is not None,
            has_position=fields.position is not None,
            status=fields.status,
        )
        return RawModelOutput(
            is_job_related=True,
            company=fields.company,
            position=fields.position,
            status=fields.status,
        )


class SingleStageLLMProvider(_LLMProvider):
    """One combined prompt returning classification and fields together."""

    name = "single_stage"

    async def _generate(self, evidence: EmailEvidence) -> RawModelOutput:
        reply: CombinedReply = await self._ask("combined", evidence, CombinedReply)
        if not reply.is_job_related:
            return RawModelOutput(is_job_related=False)
        return RawModelOutput(
            is_job_related=True,
            company=reply.company,
            position=reply.position,
            status=reply.status,
        )
