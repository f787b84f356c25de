"""Monitoring and metrics instrumentation for Job Mail Pipeline.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from jobmail_pipeline.monitoring.metrics import (
    ingested_records_total,
    llm_latency_seconds,
    llm_tokens_total,
    normalization_rules_total,
    provider_attempts_total,
    provider_latency_seconds,
    review_decisions_total,
    review_queue_depth,
    sub_batch_commit_seconds,
    sub_batch_commits_total,
)

__all__ = [
    "provider_attempts_total",
    "provider_latency_seconds",
    "llm_latency_seconds",
    "llm_tokens_total",
    "normalization_rules_total",
    "ingested_records_total",
    "sub_batch_commits_total",
    "sub_batch_commit_seconds",
    "review_decisions_total",
    "review_queue_depth",
]
