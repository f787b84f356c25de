"""
Input data models for Job Mail Pipeline.

An EmailInput is what the mail-provider integration hands over: a plain-text
view of one message plus the identifiers used for deduplication.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EmailEvidence(BaseModel):
    """
    Textual evidence used by providers and the normalization rules.

    Only subject, body and sender are ever inspected; identifiers and
    timestamps live on EmailInput.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: str = Field(default="", description="Subject line")
    body_plaintext: str = Field(default="", description="Plain-text body")
    from_address: str = Field(
        default="",
        description='Raw From header, e.g. "Acme Talent Team <jobs@acme.com>"',
    )


class EmailInput(EmailEvidence):
    """
    Email record supplied by the mail-provider integration.

    Immutable once fetched. Uniquely identified by
    (provider_message_id, account_id).
    """

    received_at: datetime = Field(..., description="When the provider received the message")
    provider_message_id: str = Field(..., min_length=1, description="Provider message identifier")
    account_id: str = Field(..., min_length=1, description="Owning mail account")

    @property
    def dedup_key(self) -> tuple[str, str]:
        """(message id, account id) pair used by the dedup log."""
        return (self.provider_message_id, self.account_id)

    def evidence(self) -> EmailEvidence:
        """Project onto the fields inspected by classification and normalization."""
        return EmailEvidence(
            subject=self.subject,
            body_plaintext=self.body_plaintext,
            from_address=self.from_address,
        )
