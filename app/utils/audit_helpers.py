"""
Audit Helper Utilities - one-line audit logging for endpoints.

Usage:
    from app.utils.audit_helpers import audit_pii_access

    await audit_pii_access(
        request=request,
        user_id=admin_email,
        action="participants_exported",
        resource_count=len(participants),
    )

Request context (IP, user agent, request ID) is read from request.state,
populated by RequestContextMiddleware.
"""

from typing import Any

from fastapi import Request

from app.infrastructure.audit import audit_logger


def _request_context(request: Request) -> dict[str, str | None]:
    state = request.state
    return {
        "ip_address": getattr(state, "ip_address", None),
        "user_agent": getattr(state, "user_agent", None),
        "request_id": getattr(state, "request_id", None),
    }


async def audit_pii_access(
    request: Request,
    user_id: str,
    action: str,
    resource_type: str = "participants",
    resource_count: int | None = None,
    pii_fields: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> bool:
    """
    Audit access to participant PII.

    Args:
        request: FastAPI Request object
        user_id: Organizer who accessed the data
        action: Action performed (e.g., "participants_exported", "broadcast_sent")
        resource_type: Type of resource (default: "participants")
        resource_count: Number of records touched
        pii_fields: PII field names involved (default: name and email)
        metadata: Additional context

    Returns:
        True if logged successfully
    """
    return await audit_logger.log(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_count=resource_count,
        pii_fields=pii_fields or ["name", "email"],
        metadata=metadata,
        **_request_context(request),
    )
