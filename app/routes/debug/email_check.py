"""Debug-only SMTP check: send the registration email to an address of choice."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.auth.verify import admin_dependency
from app.infrastructure.observability.logging import get_logger
from app.models.api.dashboard_request import SendTestEmailRequest
from app.models.api.dashboard_response import SendTestEmailResponse
from app.services.email.notification_service import send_registration_email
from app.services.email.transport import MailTransportConfigurationError

logger = get_logger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


@router.post("/test-email", response_model=SendTestEmailResponse)
async def send_test_email(body: SendTestEmailRequest, claims: dict = Depends(admin_dependency)):
    try:
        await send_registration_email(body.test_email, "Test User")
    except MailTransportConfigurationError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "Email service not configured",
                "detail": str(e),
                "suggestion": e.suggestion,
            },
        )
    except Exception as e:
        logger.error("Email test failed", error=str(e), error_type=type(e).__name__)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Failed to send test email",
                "detail": str(e),
                "suggestion": "Check your SMTP configuration in environment variables",
            },
        )

    return SendTestEmailResponse(
        success=True,
        message=f"Test email sent successfully to {body.test_email}",
        timestamp=datetime.now(UTC).isoformat(),
    )
