"""Persistence — the local append-only audit log."""

from portfolio.persistence.audit_log import AuditKind, AuditLog, AuditRecord

__all__ = ["AuditKind", "AuditLog", "AuditRecord"]
