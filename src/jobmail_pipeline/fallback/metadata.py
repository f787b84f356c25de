"""
Fallback attempt tracking.

FallbackTrace captures every tier the orchestrator tried for one email,
for logs and debugging; the persisted audit trail is the result's own
notes and decision_path.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ProviderAttempt:
    """
    One provider call.

    Attributes:
        tier: Provider name
        outcome: "success" or the failure kind (timeout, malformed_output, ...)
        latency_ms: Wall time of the call
        error: Failure message, None on success
    """

    tier: str
    outcome: str
    latency_ms: int
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"


@dataclass(frozen=True)
class FallbackTrace:
    """
    Complete fallback history for one classify() call.

    Attributes:
        attempts: Provider calls in order
        final_tier: Tier whose result was returned ("none" if the chain ran dry)
        confidence_ceiling: Cap applied to the returned confidence
        total_latency_ms: Time from first call to result
    """

    attempts: tuple[ProviderAttempt, ...] = field(default_factory=tuple)
    final_tier: str = "none"
    confidence_ceiling: float = 1.0
    total_latency_ms: int = 0

    @property
    def failures(self) -> int:
        return sum(1 for attempt in self.attempts if not attempt.succeeded)
