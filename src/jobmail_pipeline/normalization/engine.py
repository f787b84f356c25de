"""
Deterministic post-processing of classification results.

normalize() is a pure function: it reads only the email evidence and the
incoming result, and returns a new NormalizedResult. Rules run in a fixed
precedence order:

1. Billing-sender demotion (short-circuits everything else)
2. Status override from subject cues
3. Vendor detection
4. Company extraction (subject template > model value > vendor strategy >
   display name > sender domain; first value surviving sanitization wins)
5. Position extraction (subject template > model value > body label)
6. Sanitization of both fields
7. Confidence re-grant when subject or vendor evidence fired

Every rule that fires appends a note tag and a decision-path step. Tags and
steps already present are not repeated, which together with the sanitizers'
idempotence makes normalize(e, normalize(e, r)) == normalize(e, r).
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from jobmail_pipeline.models.input_models import EmailEvidence
from jobmail_pipeline.models.output_models import ClassificationResult, NormalizedResult
from jobmail_pipeline.normalization import rules
from jobmail_pipeline.normalization.address import SenderAddress, parse_from
from jobmail_pipeline.normalization.sanitize import (
    sanitize_company,
    sanitize_position,
    split_camel,
    title_case,
)
from jobmail_pipeline.normalization.vendors import VendorContext, VendorRule, detect_vendor

PATH_PREFIX = "norm:"

# Tags whose firing counts as subject-line or vendor evidence for the re-grant
_REGRANT_TAG_PREFIXES = (
    "status_subject_override",
    "company_from_subject",
    "company_from_vendor",
    "position_from_subject",
)


@dataclass(frozen=True)
class _Evidence:
    subject: str
    body: str
    sender: SenderAddress
    vendor: Optional[VendorRule]

    @classmethod
    def build(cls, evidence: EmailEvidence) -> "_Evidence":
        subject = (evidence.subject or "").strip()
        body = (evidence.body_plaintext or "").strip()
        sender = parse_from(evidence.from_address)
        return cls(subject=subject, body=body, sender=sender, vendor=detect_vendor(sender, body))

    def vendor_context(self) -> VendorContext:
        return VendorContext(subject=self.subject, body=self.body, sender=self.sender)


def _fire(result: NormalizedResult, tag: str, fired: list[str], **updates) -> NormalizedResult:
    fired.append(tag)
    return result.derive(notes=(tag,), path_steps=(PATH_PREFIX + tag,), **updates)


# ============================================================================
# Rule 1: billing demotion
# ============================================================================

def is_billing_sender(evidence: _Evidence) -> bool:
    """Billing/invoice sender whose subject carries no job keyword."""
    address = evidence.sender.email or evidence.sender.display_name
    if not rules.BILLING_SENDER_PATTERN.search(address):
        return False
    return not rules.JOB_SUBJECT_KEYWORDS.search(evidence.subject)


# ============================================================================
# Rule 2: status override
# ============================================================================

def status_from_subject(subject: str):
    for status, pattern in rules.STATUS_SUBJECT_CUES:
        if pattern.search(subject):
            return status
    return None


def _apply_status(evidence: _Evidence, result: NormalizedResult, fired: list[str]) -> NormalizedResult:
    cue = status_from_subject(evidence.subject)
    if cue is None or cue == result.status:
        return result
    return _fire(
        result,
        "status_subject_override",
        fired,
        status=cue,
        confidence=max(result.confidence, rules.STATUS_OVERRIDE_MIN_CONFIDENCE),
    )


# ============================================================================
# Rules 3-4: vendor detection and company extraction
# ============================================================================

def _display_name_company(sender: SenderAddress) -> Optional[str]:
    display = rules.VIA_SUFFIX_PATTERN.sub("", sender.display_name).strip()
    if not display or rules.NOREPLY_DISPLAY.match(display):
        return None
    # "Acme Corp Recruiting" -> "Acme Corp" -> "Acme"
    previous = None
    while previous != display:
        previous = display
        display = rules.TEAM_SUFFIX_PATTERN.sub("", display)
        display = rules.LEGAL_SUFFIX_PATTERN.sub("", display).strip()
    return display if len(display) > 2 else None


def _domain_company(sender: SenderAddress) -> Optional[str]:
    if not sender.domain or rules.GENERIC_SENDER_DOMAINS.search(sender.domain):
        return None
    labels = sender.domain.split(".")[:-1]
    while len(labels) > 1 and labels[0] in rules.DOMAIN_NOISE_LABELS:
        labels = labels[1:]
    if not labels or len(labels[0]) <= 2:
        return None
    return title_case(split_camel(labels[0]).replace("-", " "))


def _company_candidates(
    evidence: _Evidence, result: NormalizedResult
) -> Iterator[tuple[Optional[str], Optional[str]]]:
    """Yield (candidate, tag) in precedence order; tag None means no rule fired."""
    for extraction in rules.COMPANY_SUBJECT_PATTERNS:
        value = extraction.search(evidence.subject)
        if value and 1 < len(value) < 50:
            yield value, extraction.tag
            break
    yield result.company, None
    vendor = evidence.vendor
    if vendor is not None and vendor.company_strategy is not None:
        yield vendor.company_strategy(evidence.vendor_context()), f"company_from_vendor:{vendor.name}"
    yield _display_name_company(evidence.sender), "company_from_display_name"
    yield _domain_company(evidence.sender), "company_from_domain"


def _position_candidates(
    evidence: _Evidence, result: NormalizedResult
) -> Iterator[tuple[Optional[str], Optional[str]]]:
    for extraction in rules.POSITION_SUBJECT_PATTERNS:
        value = extraction.search(evidence.subject)
        if value and 2 < len(value) < 100 and not rules.POSITION_REJECT_TOKENS.match(value):
            yield value, extraction.tag
            break
    yield result.position, None
    for line in evidence.body.splitlines()[: rules.POSITION_BODY_SCAN_LINES]:
        value = rules.POSITION_BODY_PATTERN.search(line)
        if value:
            yield value, rules.POSITION_BODY_PATTERN.tag
            break


def _first_sanitized(
    candidates: Iterator[tuple[Optional[str], Optional[str]]],
    sanitizer: Callable[[Optional[str]], Optional[str]],
) -> tuple[Optional[str], Optional[str]]:
    for candidate, tag in candidates:
        value = sanitizer(candidate)
        if value is not None:
            return value, tag
    return None, None


def _apply_fields(evidence: _Evidence, result: NormalizedResult, fired: list[str]) -> NormalizedResult:
    if evidence.vendor is not None:
        result = _fire(result, f"vendor:{evidence.vendor.name}", fired)

    company, company_tag = _first_sanitized(_company_candidates(evidence, result), sanitize_company)
    if company_tag:
        result = _fire(result, company_tag, fired, company=company)
    elif company != result.company:
        result = _fire(result, _cleanup_tag("company", company), fired, company=company)

    position, position_tag = _first_sanitized(_position_candidates(evidence, result), sanitize_position)
    if position_tag:
        result = _fire(result, position_tag, fired, position=position)
    elif position != result.position:
        result = _fire(result, _cleanup_tag("position", position), fired, position=position)

    return result


def _cleanup_tag(field_name: str, value: Optional[str]) -> str:
    # The model's own value was cleaned up, or dropped with nothing to replace it
    return f"{field_name}_sanitized" if value is not None else f"{field_name}_rejected"


# ============================================================================
# Rule 7: confidence re-grant
# ============================================================================

def _apply_regrant(result: NormalizedResult, fired: list[str]) -> NormalizedResult:
    evidence_fired = any(tag.startswith(_REGRANT_TAG_PREFIXES) for tag in fired)
    if not evidence_fired or result.confidence >= rules.REGRANT_CONFIDENCE:
        return result
    return _fire(result, "confidence_regranted", fired, confidence=rules.REGRANT_CONFIDENCE)


def normalize(evidence: EmailEvidence, raw: ClassificationResult) -> NormalizedResult:
    """
    Correct and sanitize a classification result using textual evidence.

    Never raises on rule non-matches: a field nothing can support is left
    None.

    Args:
        evidence: Subject, body and sender of the email (EmailInput works too)
        raw: Result produced by the fallback orchestrator

    Returns:
        NormalizedResult whose company/position satisfy the sanitizer bounds
    """
    facts = _Evidence.build(evidence)
    result = NormalizedResult.from_classification(raw)
    fired: list[str] = []

    if is_billing_sender(facts):
        return _fire(
            result,
            "demoted_billing_sender",
            fired,
            is_job_related=False,
            company=None,
            position=None,
            status=None,
            confidence=rules.BILLING_DEMOTION_CONFIDENCE,
        )

    result = _apply_status(facts, result, fired)
    result = _apply_fields(facts, result, fired)
    return _apply_regrant(result, fired)
