"""
Review gate: confidence routing, human decisions, and job promotion.
"""

from jobmail_pipeline.review.exceptions import InvalidReviewTransition
from jobmail_pipeline.review.gate import ReviewGate

__all__ = ["InvalidReviewTransition", "ReviewGate"]
