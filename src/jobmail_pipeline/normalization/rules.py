"""
Pattern tables for the normalization rules.

Every rule is data: extending coverage means adding a row here (or a
VendorRule in vendors.py), never touching the control flow in engine.py.
Patterns that extract a value expose it as the named group `value`.
"""

import re
from dataclasses import dataclass
from typing import Optional

from jobmail_pipeline.models.enums import ApplicationStatus

_I = re.IGNORECASE


@dataclass(frozen=True)
class ExtractionPattern:
    """A regex plus the note tag recorded when it yields a value."""

    pattern: re.Pattern[str]
    tag: str

    def search(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        if not match:
            return None
        value = match.group("value")
        return value.strip() if value else None


# ============================================================================
# Non-job demotion
# ============================================================================

# Matched against the full sender address (local part and domain)
BILLING_SENDER_PATTERN = re.compile(r"(billpay|billing|invoice|statement|payment)", _I)

JOB_SUBJECT_KEYWORDS = re.compile(
    r"\b(job|application|applied|interview|offer|candidate|position|role)\b", _I
)

BILLING_DEMOTION_CONFIDENCE = 0.2


# ============================================================================
# Status cues (fixed priority: first row that matches wins)
# ============================================================================

STATUS_SUBJECT_CUES: list[tuple[ApplicationStatus, re.Pattern[str]]] = [
    (
        ApplicationStatus.OFFER,
        re.compile(r"\b(offer|congratulations|we are pleased to offer)\b", _I),
    ),
    (
        ApplicationStatus.DECLINED,
        re.compile(r"\b(regret|unfortunately|will not proceed|not move forward|not selected)\b", _I),
    ),
    (
        ApplicationStatus.INTERVIEW,
        re.compile(r"\b(interview|screen|phone screen|onsite|schedule|assessment|coding test)\b", _I),
    ),
    (
        ApplicationStatus.APPLIED,
        re.compile(r"\b(thank you for applying|application received|we received your application)\b", _I),
    ),
]

STATUS_OVERRIDE_MIN_CONFIDENCE = 0.7


# ============================================================================
# Company extraction
# ============================================================================

_COMPANY = r"(?P<value>[^,–\-|.!?]{2,50})"

COMPANY_SUBJECT_PATTERNS: list[ExtractionPattern] = [
    ExtractionPattern(re.compile(rf"thank you for (?:your )?application to {_COMPANY}", _I), "company_from_subject"),
    ExtractionPattern(re.compile(rf"your application to {_COMPANY}", _I), "company_from_subject"),
    ExtractionPattern(re.compile(rf"application received\b.*\bat {_COMPANY}", _I), "company_from_subject"),
    ExtractionPattern(re.compile(rf"application\b.*\bfor\b.*\bat {_COMPANY}", _I), "company_from_subject"),
    ExtractionPattern(re.compile(rf"received\b.*\bapplication\b.*\bat {_COMPANY}", _I), "company_from_subject"),
    # "Extend. Your application was received"
    ExtractionPattern(
        re.compile(r"^(?P<value>[A-Z][\w&']*(?:\s+[A-Z][\w&']*){0,3})\.\s+(?i:your|we|thank)"),
        "company_from_subject",
    ),
]

TEAM_SUFFIX_PATTERN = re.compile(
    r"\s*\b(talent acquisition|talent team|recruiting team|recruiting|recruitment|careers|"
    r"hr team|hiring team|people team|jobs)\s*$",
    _I,
)
LEGAL_SUFFIX_PATTERN = re.compile(r"[\s,]*\b(inc|corp|llc|ltd|gmbh)\.?\s*$", _I)
VIA_SUFFIX_PATTERN = re.compile(r"\s+via\s+.*$", _I)

# Mailbox-provider and ATS domains never name the hiring company
GENERIC_SENDER_DOMAINS = re.compile(
    r"(gmail|googlemail|yahoo|outlook|hotmail|live|icloud|aol|proton|applytojob|greenhouse|"
    r"ashbyhq|ashby|workday|lever|icims|smartrecruiters|linkedin|indeed|successfactors|jobvite)",
    _I,
)

# Leading labels stripped from sender domains before picking the company label
DOMAIN_NOISE_LABELS = {
    "mail", "email", "e", "em", "mg", "notifications", "notify", "careers", "jobs",
    "talent", "hr", "recruiting", "no-reply", "noreply", "info", "news", "txn",
}

NOREPLY_DISPLAY = re.compile(r"^(no[\s\-_]?reply|do[\s\-_]?not[\s\-_]?reply|notifications?)$", _I)


# ============================================================================
# Position extraction
# ============================================================================

_TITLE = r"(?P<value>[A-Za-z0-9/&+() \-]{2,80})"
_TITLE_LAZY = r"(?P<value>[A-Za-z0-9/&+() \-]{2,80}?)"

_ROLE_QUALIFIERS = r"(?:senior|junior|lead|staff|principal|sr|jr|head of)"
_ROLE_AREAS = (
    r"(?:data|machine learning|business|product|software|full[\s\-]?stack|backend|frontend|"
    r"marketing|sales|operations|research|qa|devops|ux|ui|cloud|security|mobile)"
)
_ROLE_NOUNS = (
    r"(?:analyst|scientist|engineer|manager|developer|designer|specialist|associate|"
    r"coordinator|intern|consultant|architect)"
)

POSITION_SUBJECT_PATTERNS: list[ExtractionPattern] = [
    ExtractionPattern(
        re.compile(r"\bfor (?:the )?(?P<value>(?:(?!\bfor\b)[^,.!?:])+?) (?:position|role)\b", _I),
        "position_from_subject",
    ),
    ExtractionPattern(re.compile(rf"\b(?:position|role):\s*{_TITLE}", _I), "position_from_subject"),
    ExtractionPattern(
        re.compile(rf"received\b.*\bapplication\b.*\bfor {_TITLE_LAZY}(?:\s+(?:at|with|position|role)\b|$)", _I),
        "position_from_subject",
    ),
    ExtractionPattern(re.compile(rf"application\b.*\bfor {_TITLE_LAZY} (?:at|with)\b", _I), "position_from_subject"),
    ExtractionPattern(re.compile(rf"we.*received your application for {_TITLE}", _I), "position_from_subject"),
    ExtractionPattern(
        re.compile(rf"\boffer for (?:the )?{_TITLE_LAZY}(?:\s+(?:position|role|at)\b|$)", _I),
        "position_from_subject",
    ),
    ExtractionPattern(re.compile(rf"invitation.*\bfor {_TITLE}", _I), "position_from_subject"),
    ExtractionPattern(
        re.compile(
            rf"\b(?P<value>(?:{_ROLE_QUALIFIERS}\.?\s+)?(?:{_ROLE_AREAS}\s+)*{_ROLE_NOUNS})\b",
            _I,
        ),
        "position_from_subject",
    ),
]

POSITION_BODY_PATTERN = ExtractionPattern(
    re.compile(rf"\b(?:position|role):\s*{_TITLE}", _I), "position_from_body"
)
POSITION_BODY_SCAN_LINES = 10

# Captures that are just glue words are not positions
POSITION_REJECT_TOKENS = re.compile(r"^(the|a|an|at|with|for|position|role)?$", _I)


# ============================================================================
# Confidence re-grant
# ============================================================================

REGRANT_CONFIDENCE = 0.8


# ============================================================================
# Sanitization vocabulary
# ============================================================================

LEADING_DETERMINERS = re.compile(r"^(?:(?:the|our|a|an)\s+)+", _I)

COMPANY_BOILERPLATE_PHRASES = re.compile(
    r"(thank you.*|your application.*|we (have )?received.*|we are excited.*)", _I
)
POSITION_BOILERPLATE_PHRASES = re.compile(
    r"(thank you.*|your application.*|we (have )?received.*|application.*\bfor\b.*)", _I
)
BOILERPLATE_TERMS = re.compile(r"(application|received|thank|unsubscribe)", _I)

STOPWORDS = frozenset(
    ["the", "and", "of", "to", "for", "in", "at", "with", "by", "a", "an", "on", "our", "your", "you"]
)
TITLE_SMALL_WORDS = frozenset(["of", "and", "the", "in", "at", "for", "to", "a", "an", "on", "by"])

COMPANY_MAX_TOKENS = 5
COMPANY_MAX_LENGTH = 40
POSITION_MAX_TOKENS = 6
POSITION_MAX_LENGTH = 60
