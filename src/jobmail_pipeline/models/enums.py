"""
Enumerations for Job Mail Pipeline data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

import re
from enum import Enum
from typing import Optional


class ApplicationStatus(str, Enum):
    """
    Application status extracted from a job email.

    Values keep their display casing because they are persisted and shown
    as-is in the review queue.
    """

    APPLIED = "Applied"
    INTERVIEW = "Interview"
    DECLINED = "Declined"
    OFFER = "Offer"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> Optional["ApplicationStatus"]:
        """
        Map a free-form model answer onto the taxonomy.

        Models answer "rejected", "phone screen", "Offer Extended" and the
        like; anything unrecognised maps to None rather than failing.

        Args:
            value: Raw status string (or None)

        Returns:
            Matching ApplicationStatus, or None
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value

        text = re.sub(r"[\s_\-]+", " ", str(value)).strip().lower()
        if not text or text in ("null", "none", "n/a", "unknown"):
            return None

        for member in cls:
            if text == member.value.lower():
                return member

        for pattern, member in _STATUS_VARIANTS:
            if pattern.search(text):
                return member
        return None


# Ordered: "offer declined" style phrasing is treated as a decline
_STATUS_VARIANTS: list[tuple[re.Pattern[str], ApplicationStatus]] = [
    (re.compile(r"\b(reject|rejected|rejection|declin|not selected|unsuccessful)"), ApplicationStatus.DECLINED),
    (re.compile(r"\boffer"), ApplicationStatus.OFFER),
    (re.compile(r"\b(interview|screen|onsite|assessment)"), ApplicationStatus.INTERVIEW),
    (re.compile(r"\b(appl|submitted|received|in review|under review)"), ApplicationStatus.APPLIED),
]


class ReviewStatus(str, Enum):
    """
    Review lifecycle of a ProcessingRecord.

    pending -> needs_review | approved (at ingestion)
    needs_review -> approved | rejected (human decision, exactly once)
    """

    PENDING = "pending"
    NEEDS_REVIEW = "needs_review"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Approved and rejected records accept no further transitions."""
        return self in (ReviewStatus.APPROVED, ReviewStatus.REJECTED)


class ReviewDecision(str, Enum):
    """Human decision on a record waiting in the review queue."""

    APPROVED = "approved"
    REJECTED = "rejected"

    def to_status(self) -> ReviewStatus:
        return ReviewStatus(self.value)
