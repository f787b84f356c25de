"""
Ollama client implementation for LLM inference.

Communicates with the Ollama API using httpx AsyncClient. Supports:
- Structured output via JSON Schema (format parameter)
- Connection pooling and retry on network errors
- Health checks
"""

import asyncio
import json
import time
from typing import Any, Optional

import httpx
import structlog

from jobmail_pipeline.llm.base_client import BaseLLMClient
from jobmail_pipeline.llm.exceptions import (
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMTimeoutError,
)
from jobmail_pipeline.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from jobmail_pipeline.monitoring.metrics import llm_latency_seconds, llm_tokens_total

logger = structlog.get_logger(__name__)


class OllamaClient(BaseLLMClient):
    """
    Ollama-specific LLM client using httpx for async HTTP communication.

    API Endpoints:
    - POST /api/generate: Generate completion with optional format constraint
    - GET /api/tags: Liveness probe

    The orchestrator bounds every provider call with its own timeout, so
    network retries here are kept short (max_retries defaults to 1).
    """

    def __init__(
        self,
        base_url: str = "http://ollama:11434",
        timeout: int = 60,
        max_retries: int = 1,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama server URL
            timeout: Request timeout in seconds
            max_retries: Connection-level attempts for network errors
            connection_limits: httpx connection pool limits
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        super().__init__(base_url, timeout, max_retries)

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            )

        self._client: Optional[httpx.AsyncClient] = None
        self._connection_limits = connection_limits
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def _build_payload(self, request: LLMGenerationRequest) -> dict[str, Any]:
        options: dict[str, Any] = {
            "temperature": request.temperature,
            "num_predict": request.max_tokens,
        }
        if request.seed is not None:
            options["seed"] = request.seed
        if request.stop_sequences:
            options["stop"] = request.stop_sequences

        return {
            "model": request.model,
            "prompt": request.prompt,
            "stream": False,
            # Ollama takes the schema object itself as "format"
            "format": request.format_schema or "json",
            "options": options,
        }

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate completion using POST /api/generate.

        Response body:
        {
            "model": "llama3.1:8b",
            "response": "{\"is_job\": true}",
            "done": true,
            "eval_count": 7,
            "prompt_eval_count": 412
        }
        """
        start_time = time.monotonic()
        payload = self._build_payload(request)

        logger.debug(
            "Sending generation request to Ollama",
            model=request.model,
            prompt_length=len(request.prompt),
            max_tokens=request.max_tokens,
            has_schema=bool(request.format_schema),
        )

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                client = await self._get_client()
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                last_error = LLMTimeoutError(
                    f"Request timeout after {self.timeout}s",
                    details={"attempt": attempt, "timeout": self.timeout},
                )
                logger.warning("Ollama request timeout", attempt=attempt, error=str(e))
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                logger.error("Ollama HTTP error", status_code=status_code, attempt=attempt)
                if status_code == 404:
                    raise LLMModelNotAvailableError(
                        f"Model not found: {request.model}",
                        details={"model": request.model, "status": status_code},
                    ) from e
                if status_code < 500:
                    raise LLMGenerationError(
                        f"Ollama client error: {status_code}",
                        details={"status": status_code, "error": e.response.text},
                    ) from e
                last_error = LLMGenerationError(
                    f"Ollama server error: {status_code}",
                    details={"status": status_code, "error": e.response.text},
                )
            except httpx.TransportError as e:
                last_error = LLMConnectionError(
                    f"Network error: {e}",
                    details={"attempt": attempt, "error_type": type(e).__name__},
                )
                logger.warning("Ollama network error", attempt=attempt, error=str(e))
            except json.JSONDecodeError as e:
                raise LLMGenerationError(
                    "Invalid JSON envelope from Ollama",
                    details={"parse_error": str(e)},
                ) from e
            else:
                return self._to_response(request, data, start_time)

            if attempt < self.max_retries:
                backoff = 0.5 * 2 ** (attempt - 1)
                await asyncio.sleep(backoff)

        llm_latency_seconds.labels(model=request.model, success="false").observe(
            time.monotonic() - start_time
        )
        assert last_error is not None
        raise last_error

    def _to_response(
        self, request: LLMGenerationRequest, data: dict[str, Any], start_time: float
    ) -> LLMGenerationResponse:
        content = data.get("response", "")
        if not content:
            raise LLMGenerationError("Empty response from Ollama", details={"response": data})

        latency_ms = int((time.monotonic() - start_time) * 1000)
        model_version = data.get("model", request.model)
        prompt_tokens = data.get("prompt_eval_count")
        completion_tokens = data.get("eval_count")

        llm_latency_seconds.labels(model=model_version, success="true").observe(latency_ms / 1000.0)
        if prompt_tokens:
            llm_tokens_total.labels(model=model_version, token_type="prompt").inc(prompt_tokens)
        if completion_tokens:
            llm_tokens_total.labels(model=model_version, token_type="completion").inc(completion_tokens)

        logger.debug(
            "Ollama generation successful",
            model=model_version,
            latency_ms=latency_ms,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

        return LLMGenerationResponse(
            content=content,
            model_version=model_version,
            finish_reason="stop" if data.get("done") else "incomplete",
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            raw_metadata={
                "total_duration": data.get("total_duration"),
                "eval_duration": data.get("eval_duration"),
            },
        )

    async def health_check(self) -> bool:
        """Check Ollama server health via GET /api/tags."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=5.0)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning("Ollama health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Ollama client connection")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
