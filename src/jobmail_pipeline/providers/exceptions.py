"""
Provider failure taxonomy.

Every failure the fallback orchestrator absorbs is a ProviderError (or is
wrapped as one). `kind` becomes the failure note: "<tier>_<kind>".
"""


class ProviderError(Exception):
    """Base class for provider failures."""

    kind = "error"

    def __init__(self, message: str, tier: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.tier = tier
        self.details = details or {}


class ProviderTimeoutError(ProviderError):
    """The provider did not answer within its time budget."""

    kind = "timeout"


class MalformedOutputError(ProviderError):
    """The backend answered, but not with the structured reply requested."""

    kind = "malformed_output"


class ProviderUnavailableError(ProviderError):
    """The backend could not be reached or refused the request."""

    kind = "unavailable"
