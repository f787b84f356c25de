"""
Fallback orchestrator.

Priority-ordered provider chain that always returns a result, plus the
per-call attempt trace.
"""

from jobmail_pipeline.fallback.engine import FallbackOrchestrator
from jobmail_pipeline.fallback.metadata import FallbackTrace, ProviderAttempt

__all__ = ["FallbackOrchestrator", "FallbackTrace", "ProviderAttempt"]
