"""
LLM-specific data models for request/response cycle.

These models are internal to the LLM layer and handle the raw communication
with the inference server. The structured replies are parsed into
ClassificationReply / ExtractionReply / CombinedReply by the output parser.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class LLMGenerationRequest(BaseModel):
    """
    Internal request model for LLM generation.

    Provider-agnostic: any BaseLLMClient implementation accepts it.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="Complete prompt")
    model: str = Field(..., description="Model name/identifier (e.g., 'llama3.1:8b')")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=256, ge=1, le=8192, description="Maximum tokens to generate")
    format_schema: Optional[Dict[str, Any]] = Field(
        default=None,
        description="JSON Schema for structured output constraint (Ollama format parameter)",
    )
    stop_sequences: Optional[list[str]] = Field(default=None, description="Stop sequences for generation")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducibility")


class LLMGenerationResponse(BaseModel):
    """Raw generated text plus metadata for logging."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Generated text (expected to be JSON)")
    model_version: str = Field(..., description="Model that actually answered")
    finish_reason: str = Field(..., description="'stop', 'length', ...")
    prompt_tokens: Optional[int] = Field(default=None)
    completion_tokens: Optional[int] = Field(default=None)
    latency_ms: int = Field(..., ge=0)
    raw_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def usage_tokens(self) -> Optional[int]:
        if self.prompt_tokens is None and self.completion_tokens is None:
            return None
        return (self.prompt_tokens or 0) + (self.completion_tokens or 0)


class ClassificationReply(BaseModel):
    """Stage 1 reply of the two-stage provider."""

    model_config = ConfigDict(extra="ignore")

    is_job: bool


class ExtractionReply(BaseModel):
    """Stage 2 reply of the two-stage provider."""

    model_config = ConfigDict(extra="ignore")

    company: Optional[str] = None
    position: Optional[str] = None
    status: Optional[str] = None


class CombinedReply(ExtractionReply):
    """Reply of the single-stage provider."""

    is_job_related: bool
