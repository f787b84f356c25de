"""
Applicant-tracking-system vendor signatures.

VENDOR_RULES is an ordered table; the first rule whose sender or body
signature matches is the detected vendor. A rule may carry a company
strategy that reads structured parts of the message that the vendor is
known to fill in.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from jobmail_pipeline.normalization.address import SenderAddress
from jobmail_pipeline.normalization.rules import TEAM_SUFFIX_PATTERN
from jobmail_pipeline.normalization.sanitize import split_camel, title_case

_I = re.IGNORECASE


@dataclass(frozen=True)
class VendorContext:
    """Everything a vendor strategy may inspect."""

    subject: str
    body: str
    sender: SenderAddress


CompanyStrategy = Callable[[VendorContext], Optional[str]]


@dataclass(frozen=True)
class VendorRule:
    """
    One ATS signature.

    Attributes:
        name: Short vendor name used in notes ("workday", "greenhouse", ...)
        address_patterns: Matched against the lower-cased sender address
        body_patterns: Matched against the message body
        company_strategy: Optional vendor-specific company extractor
    """

    name: str
    address_patterns: tuple[re.Pattern[str], ...] = ()
    body_patterns: tuple[re.Pattern[str], ...] = ()
    company_strategy: Optional[CompanyStrategy] = field(default=None, compare=False)

    def matches(self, sender: SenderAddress, body: str) -> bool:
        if sender.email and any(p.search(sender.email) for p in self.address_patterns):
            return True
        return any(p.search(body) for p in self.body_patterns)


# ============================================================================
# Company strategies
# ============================================================================

_WORKDAY_SUBJECT = re.compile(r"workday\s*@\s*(?P<value>[A-Za-z0-9&.\- ]{2,40})", _I)
_WORKDAY_ADDRESS = re.compile(r"^(?P<value>[^@]+)@myworkday\.com$", _I)
_GREENHOUSE_APPLYING = re.compile(r"thank you for applying to (?P<value>[^,–\-|.!?\n]{2,40})", _I)
_LEVER_LINK = re.compile(r"jobs\.lever\.co/(?P<value>[A-Za-z0-9\-]{2,60})", _I)
_ICIMS_HOST = re.compile(r"@(?:careers|jobs)-(?P<value>[a-z0-9]{2,40})\.icims\.com$", _I)


def workday_company(ctx: VendorContext) -> Optional[str]:
    """'Workday @ IngramMicro' subject, else the tenant in 'gapinc@myworkday.com'."""
    match = _WORKDAY_SUBJECT.search(ctx.subject)
    if match:
        return split_camel(match.group("value").strip())
    match = _WORKDAY_ADDRESS.search(ctx.sender.email)
    if match:
        return title_case(split_camel(match.group("value")))
    return None


def greenhouse_company(ctx: VendorContext) -> Optional[str]:
    match = _GREENHOUSE_APPLYING.search(f"{ctx.subject} {ctx.body}")
    return match.group("value").strip() if match else None


def ashby_company(ctx: VendorContext) -> Optional[str]:
    """Ashby sends as '<Company> Talent Team'; keep the first two words."""
    display = TEAM_SUFFIX_PATTERN.sub("", ctx.sender.display_name).strip()
    words = display.split()
    if not words or len(words[0]) < 2:
        return None
    return " ".join(words[:2])


def lever_company(ctx: VendorContext) -> Optional[str]:
    match = _LEVER_LINK.search(ctx.body)
    if not match:
        return None
    return title_case(match.group("value").replace("-", " "))


def icims_company(ctx: VendorContext) -> Optional[str]:
    match = _ICIMS_HOST.search(ctx.sender.email)
    return title_case(match.group("value")) if match else None


# ============================================================================
# Signature table
# ============================================================================

VENDOR_RULES: list[VendorRule] = [
    VendorRule(
        name="greenhouse",
        address_patterns=(re.compile(r"@(?:[\w\-]+\.)*greenhouse(?:-mail)?\.io$", _I),),
        company_strategy=greenhouse_company,
    ),
    VendorRule(
        name="workday",
        address_patterns=(
            re.compile(r"@(?:[\w\-]+\.)*myworkday\.com$", _I),
            re.compile(r"@otp\.workday\.com$", _I),
        ),
        company_strategy=workday_company,
    ),
    VendorRule(
        name="ashby",
        address_patterns=(re.compile(r"@(?:[\w\-]+\.)*ashbyhq\.com$", _I),),
        company_strategy=ashby_company,
    ),
    VendorRule(
        name="lever",
        address_patterns=(re.compile(r"@hire\.lever\.co$", _I),),
        body_patterns=(re.compile(r"jobs\.lever\.co/", _I),),
        company_strategy=lever_company,
    ),
    VendorRule(
        name="successfactors",
        address_patterns=(re.compile(r"@(?:[\w\-]+\.)*(?:successfactors\.com|sap\.com)$", _I),),
    ),
    VendorRule(
        name="icims",
        address_patterns=(re.compile(r"@(?:[\w\-]+\.)*icims\.com$", _I),),
        company_strategy=icims_company,
    ),
]


def detect_vendor(
    sender: SenderAddress,
    body: str,
    rules: Optional[list[VendorRule]] = None,
) -> Optional[VendorRule]:
    """Return the first vendor rule matching the sender or body, if any."""
    for rule in rules if rules is not None else VENDOR_RULES:
        if rule.matches(sender, body):
            return rule
    return None
