"""
Dashboard request models.
Used by the organizer routes for input validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BroadcastRequest(BaseModel):
    """Request for broadcasting an email to every registered participant."""

    model_config = ConfigDict(populate_by_name=True)

    subject: str = Field(..., min_length=1, max_length=200, description="Email subject")
    message: str = Field(..., min_length=1, description="Email body (plain text)")
    html: str | None = Field(default=None, description="Optional HTML version of the body")
    chunk_size: int | None = Field(
        default=None, alias="chunkSize", description="Recipients per BCC batch (values below 1 mean 1)"
    )
    delay_ms: int | None = Field(
        default=None, alias="delayMs", ge=0, description="Pause between batches in milliseconds"
    )

    @field_validator("subject", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SendTestEmailRequest(BaseModel):
    """Request for sending a test email to verify SMTP settings."""

    model_config = ConfigDict(populate_by_name=True)

    test_email: str = Field(..., alias="testEmail", min_length=3, description="Recipient address")

    @field_validator("test_email")
    @classmethod
    def _looks_like_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("must be an email address")
        return value
