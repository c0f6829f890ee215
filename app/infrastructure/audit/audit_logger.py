"""
AuditLogger - audit trail for organizer actions that touch participant PII.

Exports hand out every participant's contact details and broadcasts mail
every participant, so both are recorded with who did it and from where.

Usage:
    from app.infrastructure.audit import audit_logger

    await audit_logger.log(
        user_id="organizer@college.edu",
        action="participants_exported",
        resource_type="participants",
        resource_count=240,
        pii_fields=["name", "email"],
        request_id="req-abc123",
    )

Writes to the audit_logs table and to structured logs. Never fails the
request if the database write fails.
"""

from typing import Any

from psycopg.types.json import Jsonb

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AuditLogger:
    """Centralized audit logging service."""

    @staticmethod
    async def log(
        user_id: str,
        action: str,
        resource_type: str | None = None,
        resource_count: int | None = None,
        pii_fields: list[str] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        request_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """
        Log an audit event to database and structured logs.

        Returns:
            True if logged successfully, False if the database write failed (never raises)
        """
        logger.info(
            "Audit event",
            audit_action=action,
            user_id=user_id,
            resource_type=resource_type,
            resource_count=resource_count,
            pii_fields=pii_fields,
            ip_address=ip_address,
            request_id=request_id,
        )

        try:
            async with db_pool.connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO audit_logs (
                        user_id, action, resource_type, resource_count, pii_fields,
                        ip_address, user_agent, request_id, metadata
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        user_id,
                        action,
                        resource_type,
                        resource_count,
                        pii_fields,
                        ip_address,
                        user_agent,
                        request_id,
                        Jsonb(metadata) if metadata is not None else None,
                    ),
                )
            return True

        except Exception as e:
            # Never fail the request because the audit row could not be written
            logger.error(
                "Failed to write audit log to database",
                error=str(e),
                error_type=type(e).__name__,
                audit_action=action,
                user_id=user_id,
                request_id=request_id,
            )
            return False


# Global singleton instance
audit_logger = AuditLogger()
