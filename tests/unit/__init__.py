"""
Unit tests for the Job Mail Pipeline.

Test individual components in isolation:
- Domain models (validation, derivation, deterministic ids)
- Normalization rules and sanitizers
- Provider tiers and the fallback orchestrator
- Storage backends (Redis mocked, in-memory)
- Review gate and ingestion pipeline
- API routes and Celery task
"""
