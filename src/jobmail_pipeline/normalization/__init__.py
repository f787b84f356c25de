"""
Normalization engine.

Rule-based, deterministic correction of classifier output:
- engine.normalize: the rule chain
- rules: ordered pattern tables
- vendors: ATS signature table and company strategies
- sanitize: company/position cleanup
"""

from jobmail_pipeline.normalization.engine import normalize
from jobmail_pipeline.normalization.sanitize import sanitize_company, sanitize_position
from jobmail_pipeline.normalization.vendors import VENDOR_RULES, VendorRule, detect_vendor

__all__ = [
    "normalize",
    "sanitize_company",
    "sanitize_position",
    "VENDOR_RULES",
    "VendorRule",
    "detect_vendor",
]
