"""
Non-model provider tiers.

KeywordProvider is a rule-based classifier used when the model tiers fail.
EmptyBaselineProvider is the terminal floor of the chain: it cannot fail.
"""

import re
from typing import Optional

from jobmail_pipeline.models.enums import ApplicationStatus
from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.output_models import RawModelOutput
from jobmail_pipeline.normalization.rules import STATUS_SUBJECT_CUES
from jobmail_pipeline.providers.base import ClassificationProvider

_I = re.IGNORECASE

JOB_KEYWORDS = re.compile(
    r"\b(application|applied|applying|interview|position|job|career|hiring|resume|cv|candidate|"
    r"recruit(?:er|ing|ment)|offer|role|employment|screening|onsite|phone screen|assessment)\b",
    _I,
)
NON_JOB_KEYWORDS = re.compile(
    r"\b(newsletter|unsubscribe|marketing|promotion|sale|discount|webinar|receipt|invoice|"
    r"order|shipping|subscription|digest|job alert|jobs you may like|recommended jobs)\b",
    _I,
)

# Body phrasing, checked when the subject carries no status cue.
# Priority: Offer > Interview > Declined > Applied
BODY_STATUS_HINTS: list[tuple[ApplicationStatus, re.Pattern[str]]] = [
    (ApplicationStatus.OFFER, re.compile(r"\b(pleased to offer|offer letter|extend an offer)\b", _I)),
    (
        ApplicationStatus.INTERVIEW,
        re.compile(r"\b(schedule (an|a|your) (interview|call)|invite you to|next round|availability)\b", _I),
    ),
    (
        ApplicationStatus.DECLINED,
        re.compile(r"\b(unfortunately|not (to )?move forward|other candidates|not be proceeding)\b", _I),
    ),
    (
        ApplicationStatus.APPLIED,
        re.compile(r"\b(thank you for (your )?(application|applying)|received your application)\b", _I),
    ),
]

COMPANY_HINTS = [
    re.compile(r"thank you for applying to\s+(?P<value>[A-Z][\w&.' ]{1,40}?)(?:[,.!]|\s+for\b)"),
    re.compile(r"\binterview with\s+(?P<value>[A-Z][\w&.' ]{1,40}?)(?:[,.!]|$)", re.MULTILINE),
    re.compile(r"\bposition at\s+(?P<value>[A-Z][\w&.' ]{1,40}?)(?:[,.!]|\s+(?:has|is|was)\b)"),
]


class KeywordProvider(ClassificationProvider):
    """
    Keyword/regex heuristic.

    Job verdict when a status cue is present, or job keywords outnumber
    non-job keywords. Confidence hint sits at the top of the band when the
    subject itself carries a job keyword or status cue, at the bottom
    otherwise.
    """

    name = "keyword"

    def __init__(self, confidence_band: tuple[float, float] = (0.6, 0.7)):
        super().__init__(confidence_band)

    async def infer(self, evidence: EmailEvidence) -> RawModelOutput:
        subject = evidence.subject or ""
        body = evidence.body_plaintext or ""
        combined = f"{subject}\n{body}"
        low, high = self.confidence_band

        status = self._status(subject, body)
        job_hits = len(JOB_KEYWORDS.findall(combined))
        non_job_hits = len(NON_JOB_KEYWORDS.findall(combined))
        is_job = status is not None or job_hits > non_job_hits

        if not is_job:
            return RawModelOutput(
                is_job_related=False,
                confidence_hint=high if non_job_hits else low,
            )

        strong_subject = bool(JOB_KEYWORDS.search(subject)) or self._subject_status(subject) is not None
        return RawModelOutput(
            is_job_related=True,
            company=self._company(body),
            status=status,
            confidence_hint=high if strong_subject else low,
        )

    @staticmethod
    def _subject_status(subject: str) -> Optional[ApplicationStatus]:
        for status, pattern in STATUS_SUBJECT_CUES:
            if pattern.search(subject):
                return status
        return None

    def _status(self, subject: str, body: str) -> Optional[ApplicationStatus]:
        status = self._subject_status(subject)
        if status is not None:
            return status
        for hint_status, pattern in BODY_STATUS_HINTS:
            if pattern.search(body):
                return hint_status
        return None

    @staticmethod
    def _company(body: str) -> Optional[str]:
        for pattern in COMPANY_HINTS:
            match = pattern.search(body)
            if match:
                return match.group("value").strip()
        return None


class EmptyBaselineProvider(ClassificationProvider):
    """
    Conservative-empty terminal tier.

    Always returns not-job-related with every field empty. Deterministic and
    infallible, so the chain always produces a result.
    """

    name = "empty_baseline"

    def __init__(self, confidence: float = 0.0):
        super().__init__((confidence, confidence))

    async def infer(self, evidence: EmailEvidence) -> RawModelOutput:
        return RawModelOutput(is_job_related=False)
