"""
Abstract base client for LLM inference.

Providers depend on this interface only, so the inference backend can be
swapped (or mocked in tests) without touching the fallback chain.
"""

from abc import ABC, abstractmethod

import structlog

from jobmail_pipeline.models.llm_models import LLMGenerationRequest, LLMGenerationResponse

logger = structlog.get_logger(__name__)


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM inference clients.

    Responsibilities:
    - Send generation requests to the inference server
    - Parse responses into LLMGenerationResponse
    - Map transport failures onto LLMClientError subclasses

    Does NOT handle:
    - Prompt construction (PromptBuilder)
    - Output validation (ModelOutputParser)
    - Falling back to other tiers (FallbackOrchestrator)
    """

    def __init__(self, base_url: str, timeout: int = 60, max_retries: int = 1):
        """
        Initialize base client.

        Args:
            base_url: Base URL of the inference server (e.g., http://ollama:11434)
            timeout: Request timeout in seconds
            max_retries: Connection-level attempts for network errors
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)

        logger.info(
            "Initialized LLM client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            timeout=timeout,
            max_retries=self.max_retries,
        )

    @abstractmethod
    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate a completion.

        Args:
            request: Standardized generation request

        Returns:
            LLMGenerationResponse with generated text and metadata

        Raises:
            LLMConnectionError: Network errors
            LLMTimeoutError: Request exceeded timeout
            LLMGenerationError: Server-side errors
            LLMModelNotAvailableError: Model not found
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the server is reachable. Never raises."""

    async def close(self) -> None:
        """Release pooled connections. Default implementation holds none."""
        logger.debug("Closing LLM client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.base_url}, timeout={self.timeout}s)"
