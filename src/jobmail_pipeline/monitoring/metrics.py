"""Custom Prometheus metrics for Job Mail Pipeline.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- provider_attempts_total (rising failure share means a tier is degraded)
- sub_batch_commits_total (any rolled_back outcome is a storage incident)
- review_queue_depth (backlog of records waiting for a human)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Fallback Chain Metrics ===

provider_attempts_total = Counter(
    "jobmail_provider_attempts_total",
    "Provider attempts by tier and outcome",
    ["tier", "outcome"],
)
"""
Provider attempts counter.

Labels:
- tier: two_stage, single_stage, keyword, empty_baseline, or a custom tier name
- outcome: success, timeout, malformed_output, error

Alert thresholds:
- WARN: two_stage failure share > 10%
- CRITICAL: empty_baseline success share > 5% (every real tier failing)
"""

provider_latency_seconds = Histogram(
    "jobmail_provider_latency_seconds",
    "Provider call latency in seconds",
    ["tier"],
    buckets=[0.05, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

llm_latency_seconds = Histogram(
    "jobmail_llm_latency_seconds",
    "LLM generation latency in seconds",
    ["model", "success"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
LLM generation latency histogram.

Labels:
- model: Model name (e.g., qwen2.5:7b, llama3.1:8b)
- success: true (generation succeeded), false (generation failed)
"""

llm_tokens_total = Counter(
    "jobmail_llm_tokens_total",
    "Total tokens consumed by model and type",
    ["model", "token_type"],
)

llm_cache_lookups_total = Counter(
    "jobmail_llm_cache_lookups_total",
    "LLM result cache lookups by tier and result (hit, miss)",
    ["tier", "result"],
)

# === Normalization Metrics ===

normalization_rules_total = Counter(
    "jobmail_normalization_rules_total",
    "Normalization rule firings by tag",
    ["tag"],
)
"""
Normalization rule firings.

Labels:
- tag: note tag without its detail suffix (company_from_vendor, vendor, ...)

A sudden drop of company_from_subject usually means a sender changed
their subject template.
"""

# === Ingestion Metrics ===

ingested_records_total = Counter(
    "jobmail_ingested_records_total",
    "Records seen by the ingestion pipeline by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: written, duplicate, failed
"""

sub_batch_commits_total = Counter(
    "jobmail_sub_batch_commits_total",
    "Sub-batch transactions by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: committed, rolled_back
"""

sub_batch_commit_seconds = Histogram(
    "jobmail_sub_batch_commit_seconds",
    "Latency of a sub-batch commit",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0],
)

# === Review Metrics ===

review_decisions_total = Counter(
    "jobmail_review_decisions_total",
    "Review gate decisions by origin and outcome",
    ["origin", "decision"],
)
"""
Labels:
- origin: ingestion (threshold routing), human (review UI)
- decision: needs_review, approved, rejected
"""

review_queue_depth = Gauge(
    "jobmail_review_queue_depth",
    "Records currently waiting for human review",
)
