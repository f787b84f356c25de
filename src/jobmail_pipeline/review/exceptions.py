"""Review gate exceptions."""

from jobmail_pipeline.models.enums import ReviewDecision, ReviewStatus


class InvalidReviewTransition(Exception):
    """
    A review decision was requested for a record that cannot take it.

    Raised for terminal records (approved / rejected) and for records that
    never entered the review queue. Carries the current state so callers can
    show it; never retried automatically.
    """

    def __init__(self, record_id: str, current_status: ReviewStatus, requested: ReviewDecision):
        self.record_id = record_id
        self.current_status = current_status
        self.requested = requested
        self.message = (
            f"Cannot apply '{requested.value}' to record {record_id}: "
            f"review status is '{current_status.value}'"
        )
        self.details = {
            "record_id": record_id,
            "current_status": current_status.value,
            "requested": requested.value,
        }
        super().__init__(self.message)
