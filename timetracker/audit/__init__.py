"""Audit logging package."""

from timetracker.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
