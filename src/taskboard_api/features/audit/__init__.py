"""Audit trail recording."""

from .recorder import AUDIT_EVENT, AuditRecorder, queue_audit

__all__ = ["AUDIT_EVENT", "AuditRecorder", "queue_audit"]
