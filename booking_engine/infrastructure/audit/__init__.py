"""
Audit logging infrastructure for booking history.

Records who changed a booking's status and when.
"""

from booking_engine.infrastructure.audit.audit_logger import AuditLogger

__all__ = ["AuditLogger"]
