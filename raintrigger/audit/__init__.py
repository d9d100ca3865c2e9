"""Audit trail system for tracking compliance state changes."""
from raintrigger.audit.models import AuditLog
from raintrigger.audit.services import AuditService

__all__ = ["AuditLog", "AuditService"]
