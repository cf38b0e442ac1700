"""
Approval decider and booking lifecycle state machine.

Legal moves:

    pending  -> approved | declined
    approved -> completed | cancelled

Transitions never mutate the booking passed in; a new record is returned
so a rejected move leaves the caller's snapshot untouched.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime, timedelta

from booking_engine.config import Settings, settings as default_settings
from booking_engine.features.booking_decisions.domain.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
)
from booking_engine.features.booking_decisions.domain.models import (
    ApprovalOutcome,
    BookingRequest,
    BookingStatus,
)
from booking_engine.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"approved", "declined"}),
    "approved": frozenset({"completed", "cancelled"}),
    "declined": frozenset(),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

OUTCOME_STATUS: dict[str, BookingStatus] = {
    "auto_approve": "approved",
    "manager_review": "pending",
    "auto_decline": "declined",
}


def stamp(previous: datetime | None, now: datetime | None = None) -> datetime:
    """Next updated_at value; always strictly later than the previous one."""
    current = now or datetime.now(UTC)
    if previous is not None and current <= previous:
        return previous + timedelta(microseconds=1)
    return current


class ApprovalDecider:
    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    def decide(self, score: int, is_flexible: bool = False) -> ApprovalOutcome:
        """
        Map a priority score onto the approval workflow.

        Flexibility only ever rescues a booking from auto-decline (it lands
        in manager review instead); it never pushes one into auto-approve.
        """
        if score >= self.config.AUTO_APPROVAL_THRESHOLD:
            return "auto_approve"
        if score >= self.config.MANAGER_REVIEW_THRESHOLD:
            return "manager_review"
        if is_flexible:
            return "manager_review"
        return "auto_decline"

    def place(
        self, booking: BookingRequest, score: int, now: datetime | None = None
    ) -> tuple[BookingRequest, ApprovalOutcome]:
        """Set the initial status of a freshly scored booking."""
        if booking.status != "pending":
            raise InvalidTransitionError(booking.id, booking.status, "pending")

        outcome = self.decide(score, booking.is_flexible)
        placed = dataclasses.replace(
            booking,
            priority_score=score,
            status=OUTCOME_STATUS[outcome],
            updated_at=stamp(booking.updated_at, now),
        )
        logger.info(
            "Initial placement decided",
            booking_id=booking.id,
            score=score,
            outcome=outcome,
            status=placed.status,
            is_flexible=booking.is_flexible,
        )
        return placed, outcome

    @staticmethod
    def can_transition(from_status: str, to_status: str) -> bool:
        return to_status in TRANSITIONS.get(from_status, frozenset())

    def transition(
        self,
        booking: BookingRequest,
        to_status: BookingStatus,
        *,
        expected_status: BookingStatus | None = None,
        expected_updated_at: datetime | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        """
        Apply a manual transition.

        Args:
            booking: Current stored state of the booking
            to_status: Target status
            expected_status: Status the caller observed when issuing the command
            expected_updated_at: updated_at the caller observed
            notes: Manager notes appended to the booking
            now: Timestamp for updated_at (defaults to current UTC time)

        Raises:
            ConcurrentModificationError: If the booking changed since the caller read it
            InvalidTransitionError: If the move is not allowed from the current status
        """
        if expected_status is not None and expected_status != booking.status:
            raise ConcurrentModificationError(booking.id, expected_status, booking.status)
        if expected_updated_at is not None and expected_updated_at != booking.updated_at:
            raise ConcurrentModificationError(booking.id, expected_updated_at, booking.updated_at)

        if not self.can_transition(booking.status, to_status):
            logger.warning(
                "Rejected booking transition",
                booking_id=booking.id,
                from_status=booking.status,
                to_status=to_status,
            )
            raise InvalidTransitionError(booking.id, booking.status, to_status)

        return dataclasses.replace(
            booking,
            status=to_status,
            manager_notes=self.append_notes(booking.manager_notes, notes),
            updated_at=stamp(booking.updated_at, now),
        )

    @staticmethod
    def append_notes(existing: str | None, notes: str | None) -> str | None:
        if not notes:
            return existing
        if not existing:
            return notes
        return f"{existing}\n{notes}"


approval_decider = ApprovalDecider()
