"""
Fallback orchestrator.

Tries providers in priority order and returns the first successful result.
Every provider failure (timeout, malformed output, any exception) is
absorbed: it is logged, recorded as a note, and lowers the confidence
ceiling of whatever tier eventually answers.

Usage:
    orchestrator = FallbackOrchestrator(build_providers(settings), timeout_seconds=30)
    result = await orchestrator.classify(email)
"""

import asyncio
import time
from typing import Optional, Sequence

import structlog

from jobmail_pipeline.fallback.metadata import FallbackTrace, ProviderAttempt
from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.output_models import DECISION_PATH_SEPARATOR, ClassificationResult
from jobmail_pipeline.monitoring.metrics import provider_attempts_total, provider_latency_seconds
from jobmail_pipeline.providers.base import ClassificationProvider
from jobmail_pipeline.providers.exceptions import ProviderError

logger = structlog.get_logger(__name__)


class FallbackOrchestrator:
    """
    Priority-ordered provider chain with a guaranteed result.

    classify() is total: it never raises for provider problems. If every
    provider fails (or the chain has no infallible floor), it returns a
    conservative empty result: not job-related, confidence 0.0.

    Attributes:
        providers: Ordered tiers, highest priority first
        timeout_seconds: Per-provider time budget
        failure_penalty: Confidence ceiling drop per failed tier
    """

    def __init__(
        self,
        providers: Sequence[ClassificationProvider],
        timeout_seconds: float = 30.0,
        failure_penalty: float = 0.05,
    ):
        """
        Initialize orchestrator.

        Args:
            providers: Ordered provider tiers
            timeout_seconds: Per-provider time budget
            failure_penalty: Ceiling drop per failed tier, within [0, 1]
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if not 0.0 <= failure_penalty <= 1.0:
            raise ValueError("failure_penalty must be within [0, 1]")

        self.providers = list(providers)
        self.timeout_seconds = timeout_seconds
        self.failure_penalty = failure_penalty

        logger.info(
            "FallbackOrchestrator initialized",
            tiers=[p.name for p in self.providers],
            timeout_seconds=timeout_seconds,
            failure_penalty=failure_penalty,
        )

    @property
    def tier_names(self) -> list[str]:
        return [p.name for p in self.providers]

    async def classify(self, evidence: EmailEvidence) -> ClassificationResult:
        """
        Classify one email through the fallback chain.

        Args:
            evidence: Email (EmailInput or EmailEvidence)

        Returns:
            ClassificationResult; never raises for provider failures
        """
        result, _ = await self.classify_with_trace(evidence)
        return result

    async def classify_with_trace(
        self, evidence: EmailEvidence
    ) -> tuple[ClassificationResult, FallbackTrace]:
        """
        Classify and also return the attempt history.

        Returns:
            Tuple of (result, trace)
        """
        start = time.monotonic()
        attempts: list[ProviderAttempt] = []
        failure_notes: list[str] = []
        tried: list[str] = []

        for provider in self.providers:
            tried.append(provider.name)
            result, attempt = await self._attempt(provider, evidence)
            attempts.append(attempt)

            if result is None:
                failure_notes.append(f"{provider.name}_failed:{attempt.outcome}")
                continue

            ceiling = self._ceiling(len(failure_notes))
            capped = min(result.confidence, ceiling)
            notes = list(failure_notes)
            if capped < result.confidence:
                notes.append("confidence_capped")

            final = ClassificationResult(
                is_job_related=result.is_job_related,
                company=result.company,
                position=result.position,
                status=result.status,
                confidence=capped,
                decision_path=DECISION_PATH_SEPARATOR.join(tried),
                notes=tuple(notes),
            )
            trace = FallbackTrace(
                attempts=tuple(attempts),
                final_tier=provider.name,
                confidence_ceiling=ceiling,
                total_latency_ms=int((time.monotonic() - start) * 1000),
            )
            if failure_notes:
                logger.info(
                    "Fallback chain answered after failures",
                    final_tier=provider.name,
                    failed_tiers=len(failure_notes),
                    confidence=capped,
                )
            return final, trace

        # No tier answered; the chain had no working floor
        logger.error("Every provider failed, returning conservative result", tiers=tried)
        final = ClassificationResult(
            is_job_related=False,
            confidence=0.0,
            decision_path=DECISION_PATH_SEPARATOR.join(tried + ["exhausted"]),
            notes=tuple(failure_notes + ["chain_exhausted"]),
        )
        trace = FallbackTrace(
            attempts=tuple(attempts),
            final_tier="none",
            confidence_ceiling=0.0,
            total_latency_ms=int((time.monotonic() - start) * 1000),
        )
        return final, trace

    def _ceiling(self, failures: int) -> float:
        return max(0.0, 1.0 - self.failure_penalty * failures)

    async def _attempt(
        self, provider: ClassificationProvider, evidence: EmailEvidence
    ) -> tuple[Optional[ClassificationResult], ProviderAttempt]:
        start = time.monotonic()
        outcome = "success"
        error: Optional[str] = None
        result: Optional[ClassificationResult] = None

        try:
            result = await asyncio.wait_for(provider.classify(evidence), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            outcome, error = "timeout", f"no answer within {self.timeout_seconds}s"
        except ProviderError as e:
            outcome, error = e.kind, e.message
        except Exception as e:  # noqa: BLE001 - any provider bug degrades to the next tier
            outcome, error = "error", f"{type(e).__name__}: {e}"

        elapsed = time.monotonic() - start
        provider_attempts_total.labels(tier=provider.name, outcome=outcome).inc()
        provider_latency_seconds.labels(tier=provider.name).observe(elapsed)

        if result is None:
            logger.warning(
                "Provider failed",
                tier=provider.name,
                outcome=outcome,
                error=error,
                latency_ms=int(elapsed * 1000),
            )
        return result, ProviderAttempt(
            tier=provider.name,
            outcome=outcome,
            latency_ms=int(elapsed * 1000),
            error=error,
        )

    async def close(self) -> None:
        """Close every provider (LLM tiers release their HTTP pools)."""
        for provider in self.providers:
            await provider.close()
