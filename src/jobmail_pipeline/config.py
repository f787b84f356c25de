"""
Configuration settings for Job Mail Pipeline.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent

# Tier names understood by the provider factory
KNOWN_PROVIDER_TIERS = ("two_stage", "single_stage", "keyword", "empty_baseline")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Job Mail Pipeline"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === Ollama Configuration ===
    OLLAMA_BASE_URL: str = "http://ollama:11434"
    OLLAMA_TIMEOUT: int = 60  # seconds
    TWO_STAGE_MODEL: str = "llama3.1:8b"
    SINGLE_STAGE_MODEL: str = "qwen2.5:7b"

    # === LLM Generation Parameters ===
    LLM_TEMPERATURE: float = 0.0  # Deterministic classification
    CLASSIFY_MAX_TOKENS: int = 32
    EXTRACT_MAX_TOKENS: int = 256

    # === Input Processing ===
    CLASSIFY_BODY_CHARS: int = 800  # Stage 1 only needs the gist
    EXTRACT_BODY_CHARS: int = 4000

    # === LLM Result Cache ===
    LLM_CACHE_ENABLED: bool = True
    LLM_CACHE_TTL_SECONDS: int = 7 * 24 * 3600
    LLM_CACHE_BODY_CHARS: int = 1000  # Body prefix hashed into the cache key

    # === Fallback Chain ===
    PROVIDER_ORDER: list[str] = list(KNOWN_PROVIDER_TIERS)
    PROVIDER_TIMEOUT_SECONDS: float = 30.0
    TWO_STAGE_CONFIDENCE: float = 0.95
    SINGLE_STAGE_CONFIDENCE: float = 0.8
    KEYWORD_CONFIDENCE_MIN: float = 0.6
    KEYWORD_CONFIDENCE_MAX: float = 0.7
    BASELINE_CONFIDENCE: float = 0.0
    FAILURE_CONFIDENCE_PENALTY: float = 0.05  # Ceiling drop per failed tier

    # === Review Gate ===
    REVIEW_THRESHOLD: float = 0.8

    # === Ingestion ===
    SUB_BATCH_SIZE: int = 50
    INGEST_WORKERS: int = 4  # Concurrent sub-batches
    INFERENCE_CONCURRENCY: int = 8  # Concurrent provider calls across sub-batches
    RESERVATION_TTL_SECONDS: int = 600

    # === Storage ===
    STORAGE_BACKEND: str = "redis"  # "redis" | "memory"
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_KEY_PREFIX: str = "jobmail"
    REDIS_RECORD_TTL_DAYS: int = 0  # 0 keeps records forever

    # === Celery ===
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 900  # seconds
    CELERY_WORKER_CONCURRENCY: int = 2

    # === Templates & Schemas ===
    PROMPT_TEMPLATES_DIR: str = str(_PACKAGE_DIR / "prompts")
    SCHEMAS_DIR: str = str(_PACKAGE_DIR / "schemas")

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    # === Feature Flags ===
    ENABLE_ASYNC_API: bool = True

    @model_validator(mode="after")
    def check_consistency(self) -> "Settings":
        """Reject out-of-range thresholds and unknown provider tiers."""
        for name in (
            "TWO_STAGE_CONFIDENCE",
            "SINGLE_STAGE_CONFIDENCE",
            "KEYWORD_CONFIDENCE_MIN",
            "KEYWORD_CONFIDENCE_MAX",
            "BASELINE_CONFIDENCE",
            "REVIEW_THRESHOLD",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

        if self.KEYWORD_CONFIDENCE_MIN > self.KEYWORD_CONFIDENCE_MAX:
            raise ValueError("KEYWORD_CONFIDENCE_MIN cannot exceed KEYWORD_CONFIDENCE_MAX")

        if not self.PROVIDER_ORDER:
            raise ValueError("PROVIDER_ORDER must name at least one tier")
        unknown = [t for t in self.PROVIDER_ORDER if t not in KNOWN_PROVIDER_TIERS]
        if unknown:
            raise ValueError(f"Unknown provider tiers in PROVIDER_ORDER: {unknown}")

        for name in (
            "SUB_BATCH_SIZE",
            "INGEST_WORKERS",
            "INFERENCE_CONCURRENCY",
            "LLM_CACHE_TTL_SECONDS",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")

        if self.STORAGE_BACKEND not in ("redis", "memory"):
            raise ValueError(f"Unsupported STORAGE_BACKEND: {self.STORAGE_BACKEND}")

        return self


# Global settings instance
settings = Settings()
