"""
Classification output models.

RawModelOutput is what an inference collaborator returns. ClassificationResult
and NormalizedResult are immutable values threaded through the pipeline:
each stage derives a new value and only ever appends to notes and
decision_path.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobmail_pipeline.models.enums import ApplicationStatus

DECISION_PATH_SEPARATOR = ">"


class RawModelOutput(BaseModel):
    """
    Output contract of an inference collaborator.

    Status strings are mapped onto ApplicationStatus leniently; unknown
    values become None.
    """

    model_config = ConfigDict(frozen=True)

    is_job_related: bool = Field(..., description="Whether the email concerns a job application")
    company: Optional[str] = Field(default=None, description="Company name as produced by the model")
    position: Optional[str] = Field(default=None, description="Position title as produced by the model")
    status: Optional[ApplicationStatus] = Field(default=None, description="Application status")
    confidence_hint: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Provider's own confidence, clamped into its tier band by the orchestrator",
    )

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, value: Any) -> Optional[ApplicationStatus]:
        return ApplicationStatus.from_raw(value)

    @field_validator("company", "position", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class ClassificationResult(BaseModel):
    """
    Result of classifying one email.

    Never mutated in place: use `derive()` to obtain a new value with
    updated fields and appended audit entries.
    """

    model_config = ConfigDict(frozen=True)

    is_job_related: bool
    company: Optional[str] = None
    position: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    decision_path: str = Field(
        default="",
        description="Ordered audit trail of providers and rules, '>'-separated",
    )
    notes: tuple[str, ...] = Field(default=(), description="Ordered tags, append-only")

    @property
    def decision_steps(self) -> list[str]:
        return [step for step in self.decision_path.split(DECISION_PATH_SEPARATOR) if step]

    def derive(
        self,
        *,
        notes: tuple[str, ...] = (),
        path_steps: tuple[str, ...] = (),
        **updates: Any,
    ):
        """
        Return a new result with field updates and appended audit entries.

        Tags and path steps already present are not appended twice, so
        re-deriving with the same evidence leaves the audit trail unchanged.

        Args:
            notes: Tags to append to notes
            path_steps: Steps to append to decision_path
            **updates: Field values to replace

        Returns:
            New instance of the same class
        """
        merged_notes = list(self.notes)
        for tag in notes:
            if tag not in merged_notes:
                merged_notes.append(tag)

        steps = self.decision_steps
        for step in path_steps:
            if step not in steps:
                steps.append(step)

        if "confidence" in updates:
            updates["confidence"] = min(1.0, max(0.0, updates["confidence"]))

        data = self.model_dump()
        data.update(updates)
        data["notes"] = tuple(merged_notes)
        data["decision_path"] = DECISION_PATH_SEPARATOR.join(steps)
        return type(self).model_validate(data)


class NormalizedResult(ClassificationResult):
    """
    ClassificationResult that has passed the normalization engine.

    company and position are either None or sanitized: bounded token count,
    bounded length, no '@', no markup residue.
    """

    @classmethod
    def from_classification(cls, result: ClassificationResult) -> "NormalizedResult":
        if isinstance(result, NormalizedResult):
            return result
        return cls.model_validate(result.model_dump())
