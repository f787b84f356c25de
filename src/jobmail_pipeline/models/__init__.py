"""
Pydantic data models for Job Mail Pipeline.

Includes:
- Enums (ApplicationStatus, ReviewStatus, ReviewDecision)
- Input models (EmailEvidence, EmailInput)
- Output models (RawModelOutput, ClassificationResult, NormalizedResult)
- Persisted records (ProcessingRecord, SyncMarker, JobRecord, IngestSummary)
- LLM models (LLMGenerationRequest, LLMGenerationResponse, structured replies)
"""

from jobmail_pipeline.models.enums import ApplicationStatus, ReviewDecision, ReviewStatus
from jobmail_pipeline.models.input_models import EmailEvidence, EmailInput
from jobmail_pipeline.models.llm_models import (
    ClassificationReply,
    CombinedReply,
    ExtractionReply,
    LLMGenerationRequest,
    LLMGenerationResponse,
)
from jobmail_pipeline.models.output_models import (
    ClassificationResult,
    NormalizedResult,
    RawModelOutput,
)
from jobmail_pipeline.models.records import (
    IngestSummary,
    JobRecord,
    ProcessingRecord,
    ReviewStats,
    SubBatchFailure,
    SyncMarker,
    job_id_for,
    record_id_for,
)

__all__ = [
    # Enums
    "ApplicationStatus",
    "ReviewDecision",
    "ReviewStatus",
    # Input models
    "EmailEvidence",
    "EmailInput",
    # Output models
    "RawModelOutput",
    "ClassificationResult",
    "NormalizedResult",
    # Records
    "ProcessingRecord",
    "SyncMarker",
    "JobRecord",
    "IngestSummary",
    "SubBatchFailure",
    "ReviewStats",
    "record_id_for",
    "job_id_for",
    # LLM models
    "LLMGenerationRequest",
    "LLMGenerationResponse",
    "ClassificationReply",
    "ExtractionReply",
    "CombinedReply",
]
