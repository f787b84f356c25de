"""
Custom exceptions for the LLM client layer.

Providers translate these into ProviderError subclasses; the fallback
orchestrator only ever sees the provider-level taxonomy.
"""


class LLMClientError(Exception):
    """
    Base exception for all LLM client errors.

    Carries a human-readable message plus structured details for logging.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMConnectionError(LLMClientError):
    """Unable to reach the inference server (DNS, refused, reset)."""


class LLMTimeoutError(LLMConnectionError):
    """The server did not answer within the client timeout."""


class LLMGenerationError(LLMClientError):
    """The server answered with an error or an unusable body."""


class LLMModelNotAvailableError(LLMGenerationError):
    """The requested model is not pulled on the server."""


class LLMSchemaViolationError(LLMClientError):
    """
    Model output is not the structured reply that was asked for.

    Raised by ModelOutputParser for unparseable JSON, JSON Schema
    violations and pydantic rejections. `details["stage"]` names the
    failing step: json_parse, schema or model.
    """
