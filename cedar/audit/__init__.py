"""Audit logging package."""

from cedar.audit.logger import AuditLogger, configure_logging, create_correlation_id
from cedar.audit.trail import AuditTrailInterface, InMemoryAuditTrail

__all__ = [
    "AuditLogger",
    "AuditTrailInterface",
    "InMemoryAuditTrail",
    "configure_logging",
    "create_correlation_id",
]
