"""
Provider interface.

A provider wraps one inference backend (LLM, ML classifier, heuristic)
behind a single signature: `classify(email) -> ClassificationResult`.
Concrete providers only implement `infer()`, which returns the raw
`{is_job_related, company, position, status}` contract; `classify()` turns
that into a ClassificationResult carrying the tier's confidence.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.output_models import ClassificationResult, RawModelOutput


class ClassificationProvider(ABC):
    """
    Base class for every tier of the fallback chain.

    Attributes:
        name: Tier name recorded in decision paths and failure notes
        confidence_band: (min, max) confidence this tier may assign on success.
            The provider's own confidence_hint is clamped into the band; without
            a hint the band maximum is used.
    """

    name: str = "provider"

    def __init__(self, confidence_band: tuple[float, float]):
        low, high = confidence_band
        if not 0.0 <= low <= high <= 1.0:
            raise ValueError(f"Invalid confidence band for {self.name}: {confidence_band}")
        self.confidence_band = (low, high)

    @abstractmethod
    async def infer(self, evidence: EmailEvidence) -> RawModelOutput:
        """
        Run the backend on one email.

        Raises:
            ProviderError: Any failure (timeout, malformed output, unavailable)
        """

    def confidence_for(self, output: RawModelOutput) -> float:
        low, high = self.confidence_band
        if output.confidence_hint is None:
            return high
        return min(high, max(low, output.confidence_hint))

    async def classify(self, evidence: EmailEvidence) -> ClassificationResult:
        """Infer and wrap the raw output with this tier's confidence."""
        output = await self.infer(evidence)
        return ClassificationResult(
            is_job_related=output.is_job_related,
            company=output.company,
            position=output.position,
            status=output.status,
            confidence=self.confidence_for(output),
            decision_path=self.name,
        )

    async def close(self) -> None:
        """Release backend resources. Most providers hold none."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, band={self.confidence_band})"


InferFn = Callable[[str, str, str], Awaitable[RawModelOutput]]


class CallableProvider(ClassificationProvider):
    """
    Adapter for an opaque inference collaborator.

    The collaborator is any coroutine function
    `infer(subject, body_plaintext, from_address) -> RawModelOutput` that
    raises on failure (an ML classifier service, a remote model, ...).
    """

    def __init__(
        self,
        name: str,
        infer_fn: InferFn,
        confidence_band: tuple[float, float],
        close_fn: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.name = name
        super().__init__(confidence_band)
        self._infer_fn = infer_fn
        self._close_fn = close_fn

    async def infer(self, evidence: EmailEvidence) -> RawModelOutput:
        return await self._infer_fn(evidence.subject, evidence.body_plaintext, evidence.from_address)

    async def close(self) -> None:
        if self._close_fn is not None:
            await self._close_fn()
