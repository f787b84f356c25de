"""
LLM client layer.

- base_client / ollama_client: async inference transport
- prompt_builder: Jinja2 prompts + JSON Schema format constraints
- output_parser: JSON -> schema -> pydantic validation of replies
"""

from jobmail_pipeline.llm.base_client import BaseLLMClient
from jobmail_pipeline.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMSchemaViolationError,
    LLMTimeoutError,
)
from jobmail_pipeline.llm.ollama_client import OllamaClient
from jobmail_pipeline.llm.output_parser import ModelOutputParser
from jobmail_pipeline.llm.prompt_builder import PromptBuilder

__all__ = [
    "BaseLLMClient",
    "OllamaClient",
    "PromptBuilder",
    "ModelOutputParser",
    "LLMClientError",
    "LLMConnectionError",
    "LLMTimeoutError",
    "LLMGenerationError",
    "LLMModelNotAvailableError",
    "LLMSchemaViolationError",
]
