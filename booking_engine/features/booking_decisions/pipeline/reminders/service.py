"""
Reminder scheduling - decides *when* booking reminders should go out.

Delivery belongs to the notification dispatcher; this module only emits
timestamps and tracks the pending -> sent / cancelled state of each slot.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, time, timedelta

from booking_engine.config import Settings, settings as default_settings
from booking_engine.features.booking_decisions.domain.errors import (
    InvalidTransitionError,
    ValidationError,
)
from booking_engine.features.booking_decisions.domain.models import BookingRequest, ReminderEntry
from booking_engine.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ReminderScheduler:
    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    @property
    def offsets(self) -> list[timedelta]:
        """Configured offsets, furthest from the shoot first."""
        return sorted(
            (timedelta(minutes=m) for m in self.config.REMINDER_OFFSETS_MINUTES), reverse=True
        )

    def event_time(self, booking: BookingRequest) -> datetime:
        """Shoot start in UTC: scheduled date (or preferred date) at the scheduled time."""
        shoot_date = booking.scheduled_date or booking.preferred_date
        if shoot_date is None:
            raise ValidationError("scheduled_date", booking_id=booking.id)

        raw_time = booking.scheduled_time or self.config.DEFAULT_SHOOT_START
        try:
            start = time.fromisoformat(raw_time)
        except ValueError as e:
            raise ValidationError(
                "scheduled_time", f"Invalid scheduled_time: {raw_time!r}", booking_id=booking.id
            ) from e

        if isinstance(shoot_date, datetime):
            shoot_date = shoot_date.date()
        return datetime.combine(shoot_date, start, tzinfo=UTC)

    def schedule(self, booking: BookingRequest, now: datetime | None = None) -> list[ReminderEntry]:
        """
        Build the full reminder set for a booking.

        Slots whose time has already passed are created cancelled; nothing
        is ever sent retroactively.
        """
        current = now or datetime.now(UTC)
        event_at = self.event_time(booking)

        entries = []
        for offset in self.offsets:
            scheduled_at = event_at - offset
            in_past = scheduled_at < current
            entries.append(
                ReminderEntry(
                    id=str(uuid.uuid4()),
                    booking_id=booking.id,
                    offset=offset,
                    scheduled_at=scheduled_at,
                    status="cancelled" if in_past else "pending",
                    cancelled_at=current if in_past else None,
                )
            )

        logger.info(
            "Reminders scheduled",
            booking_id=booking.id,
            event_at=event_at.isoformat(),
            pending=sum(1 for e in entries if e.status == "pending"),
            skipped_past=sum(1 for e in entries if e.status == "cancelled"),
        )
        return entries

    def cancel(
        self, entries: Iterable[ReminderEntry], now: datetime | None = None
    ) -> list[ReminderEntry]:
        """Cancel every pending entry; sent and already-cancelled entries are kept as they are."""
        current = now or datetime.now(UTC)
        return [
            dataclasses.replace(entry, status="cancelled", cancelled_at=current)
            if entry.status == "pending"
            else entry
            for entry in entries
        ]

    def reschedule(
        self,
        existing: Iterable[ReminderEntry],
        booking: BookingRequest,
        now: datetime | None = None,
    ) -> list[ReminderEntry]:
        """Cancel the old set and append a fresh one computed against the new shoot time."""
        current = now or datetime.now(UTC)
        cancelled = self.cancel(existing, current)
        fresh = self.schedule(booking, current)
        return cancelled + fresh

    def mark_sent(self, entry: ReminderEntry, now: datetime | None = None) -> ReminderEntry:
        """Dispatcher acknowledged delivery."""
        if entry.status == "sent":
            return entry
        if entry.status != "pending":
            raise InvalidTransitionError(entry.booking_id, entry.status, "sent")
        return dataclasses.replace(entry, status="sent", sent_at=now or datetime.now(UTC))

    def record_failure(self, entry: ReminderEntry) -> ReminderEntry:
        """Failed delivery keeps the slot pending for the dispatcher's retry."""
        if entry.status != "pending":
            raise InvalidTransitionError(entry.booking_id, entry.status, "pending")
        return dataclasses.replace(entry, attempts=entry.attempts + 1)

    @staticmethod
    def due(entries: Iterable[ReminderEntry], now: datetime | None = None) -> list[ReminderEntry]:
        current = now or datetime.now(UTC)
        return sorted(
            (e for e in entries if e.status == "pending" and e.scheduled_at <= current),
            key=lambda e: e.scheduled_at,
        )


reminder_scheduler = ReminderScheduler()
