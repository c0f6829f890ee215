"""
Dashboard API Routes
Organizer-only endpoints: broadcast email, data export and aggregate stats.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse

from app.auth.verify import admin_dependency, caller_email
from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.api.dashboard_request import BroadcastRequest
from app.models.api.dashboard_response import (
    BroadcastResponse,
    BroadcastResultResponse,
    ServiceNotConfiguredResponse,
    StatsResponse,
)
from app.models.domain.broadcast_domain import BroadcastOptions
from app.models.domain.export_domain import ExportFormat, ExportScope
from app.repositories.participant_repository import ParticipantRepository
from app.services.email.broadcast_service import broadcast_dispatcher
from app.services.email.transport import MailTransportConfigurationError, get_or_create_transport
from app.services.export.export_service import export_service
from app.utils.audit_helpers import audit_pii_access

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _not_configured(error: MailTransportConfigurationError) -> JSONResponse:
    body = ServiceNotConfiguredResponse(
        error="Email service not configured",
        detail=str(error),
        suggestion=error.suggestion,
    )
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())


@router.post(
    "/broadcast",
    response_model=BroadcastResponse,
    response_model_exclude_none=True,
    responses={503: {"model": ServiceNotConfiguredResponse}},
)
async def broadcast_email(
    request: Request,
    body: BroadcastRequest,
    claims: dict = Depends(admin_dependency),
):
    """Email every registered participant in BCC batches."""
    admin = caller_email(claims) or claims.get("sub", "unknown")

    # Fail before reading recipients if mail cannot be sent at all
    try:
        get_or_create_transport()
    except MailTransportConfigurationError as e:
        logger.error("Broadcast rejected, mail transport not configured", missing=e.missing)
        return _not_configured(e)

    try:
        recipients = await ParticipantRepository.list_emails()
    except Exception as e:
        logger.error("Failed to load broadcast recipients", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load participants, please retry",
        )

    if not recipients:
        return BroadcastResponse(
            ok=True,
            count=0,
            info="No recipients found. Please ensure participants have registered first.",
        )

    options = BroadcastOptions(
        chunk_size=body.chunk_size if body.chunk_size is not None else settings.BROADCAST_CHUNK_SIZE,
        delay_ms=body.delay_ms if body.delay_ms is not None else settings.BROADCAST_DELAY_MS,
        html=body.html,
    )

    try:
        result = await broadcast_dispatcher.dispatch(recipients, body.subject, body.message, options)
    except MailTransportConfigurationError as e:
        return _not_configured(e)

    await audit_pii_access(
        request=request,
        user_id=admin,
        action="broadcast_sent",
        resource_count=result.total_recipients,
        pii_fields=["email"],
        metadata={"subject": body.subject, **result.to_dict()},
    )

    sent_to = result.total_recipients - result.rejected
    if result.failed_batches:
        message = (
            f"Broadcast finished with {result.failed_batches} of {result.batches} "
            "batches failing; see errors before retrying"
        )
    else:
        message = f"Broadcast sent successfully to {sent_to} participants"

    return BroadcastResponse(
        ok=result.failed_batches < result.batches,
        count=result.total_recipients,
        message=message,
        result=BroadcastResultResponse.model_validate(result.to_dict()),
    )


@router.get("/export")
async def export_data(
    request: Request,
    export_format: ExportFormat = Query(ExportFormat.EXCEL, alias="format"),
    sheets: ExportScope = Query(ExportScope.ALL),
    claims: dict = Depends(admin_dependency),
):
    """Download participants, teams and analytics as xlsx, csv or json."""
    admin = caller_email(claims) or claims.get("sub", "unknown")

    try:
        document = await export_service.export(sheets, export_format)
    except Exception:
        logger.exception("Export failed", format=export_format.value, sheets=sheets.value)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate export, please retry",
        )

    await audit_pii_access(
        request=request,
        user_id=admin,
        action="participants_exported",
        metadata={"format": export_format.value, "sheets": sheets.value, "filename": document.filename},
    )

    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@router.get("/stats", response_model=StatsResponse)
async def dashboard_stats(claims: dict = Depends(admin_dependency)):
    """Registration totals shown on the organizer dashboard."""
    try:
        summary = await export_service.summary()
    except Exception as e:
        logger.error("Failed to compute dashboard stats", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute stats, please retry",
        )

    return StatsResponse(summary=summary)
