"""Audit logging package."""

from expense_tracker.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
