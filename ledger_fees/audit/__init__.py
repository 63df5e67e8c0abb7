"""Audit logging package."""

from ledger_fees.audit.logger import AuditLogger, AuditSink, create_correlation_id

__all__ = ["AuditLogger", "AuditSink", "create_correlation_id"]
