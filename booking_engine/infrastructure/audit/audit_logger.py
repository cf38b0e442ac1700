"""
AuditLogger - Booking history trail.

Every status change, reschedule and automatic placement is recorded so
managers can review who moved a booking and why.

Usage:
    from booking_engine.infrastructure.audit import AuditLogger

    audit = AuditLogger(sink)
    await audit.log(
        booking_id="bk-123",
        action="approved",
        from_status="pending",
        to_status="approved",
        actor_id="manager-7",
        notes="Fits Tuesday route",
    )

Design Principles:
- Write to both the audit sink (queryable history) and structured logs
- Never fail the booking operation if audit logging fails
"""

from datetime import UTC, datetime
from typing import Any

from booking_engine.features.booking_decisions.domain.models import BookingAuditEntry
from booking_engine.features.booking_decisions.repository.interfaces import AuditSink
from booking_engine.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AuditLogger:
    """
    Booking audit logging service.

    Logs every booking state change to:
    1. The injected AuditSink - booking history
    2. Structured logs (stdout) - real-time monitoring
    """

    def __init__(self, sink: AuditSink | None = None):
        self.sink = sink

    async def log(
        self,
        booking_id: str,
        action: str,
        from_status: str | None = None,
        to_status: str | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        Log an audit event to the sink and structured logs.

        Args:
            booking_id: Booking that changed (required)
            action: Action name (e.g., "submitted", "approved", "rescheduled")
            from_status: Status before the change
            to_status: Status after the change
            actor_id: Manager/agent who issued the command, None for automatic moves
            notes: Manager notes attached to the change
            metadata: Additional context (JSON-serializable dict)
            now: Timestamp of the change

        Returns:
            True if logged successfully, False if failed (never raises)
        """
        changed_at = now or datetime.now(UTC)

        logger.info(
            "Audit event",
            audit_action=action,
            booking_id=booking_id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
        )

        if self.sink is None:
            return True

        entry = BookingAuditEntry(
            booking_id=booking_id,
            action=action,
            from_status=from_status,
            to_status=to_status,
            changed_at=changed_at,
            actor_id=actor_id,
            notes=notes,
            metadata=metadata,
        )
        try:
            await self.sink.append(entry)
            return True
        except Exception as e:
            # Never fail the booking operation due to audit logging failure
            logger.error(
                "Failed to write booking audit entry",
                error=str(e),
                error_type=type(e).__name__,
                action=action,
                booking_id=booking_id,
                fallback_data={
                    "booking_id": booking_id,
                    "action": action,
                    "from_status": from_status,
                    "to_status": to_status,
                    "actor_id": actor_id,
                    "timestamp": changed_at.isoformat(),
                },
            )
            return False

    async def history(self, booking_id: str) -> list[BookingAuditEntry]:
        if self.sink is None:
            return []
        return await self.sink.history(booking_id)
