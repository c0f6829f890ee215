from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BroadcastResultResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_recipients: int = Field(..., alias="totalRecipients")
    batches: int
    accepted: int
    rejected: int
    failed_batches: int = Field(..., alias="failedBatches")
    errors: list[str]


class BroadcastResponse(BaseModel):
    """Response for POST /dashboard/broadcast"""

    ok: bool
    count: int
    message: str | None = None
    info: str | None = None
    result: BroadcastResultResponse | None = None


class ServiceNotConfiguredResponse(BaseModel):
    error: str
    detail: str
    suggestion: str


class SendTestEmailResponse(BaseModel):
    success: bool
    message: str
    timestamp: str


class StatsResponse(BaseModel):
    """Response for GET /dashboard/stats (the export summary row)."""

    summary: dict[str, Any]
