"""
Audit logging infrastructure for organizer actions on participant data.
"""

from app.infrastructure.audit.audit_logger import AuditLogger, audit_logger

__all__ = ["AuditLogger", "audit_logger"]
