"""
Job Mail Pipeline.

Classifies a stream of email records as job-related or not and extracts
structured application fields:
- Company and position (sanitized, bounded)
- Application status (Applied / Interview / Declined / Offer)
- Confidence with full decision path and rule notes

Architecture: provider fallback chain (LLM two-stage, LLM single-stage,
keyword heuristic, empty baseline) + deterministic normalization +
deduplicated sub-batch transactions + confidence-gated review queue.
"""

__version__ = "0.1.0"
