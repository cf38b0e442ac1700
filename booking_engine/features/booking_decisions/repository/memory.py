"""
In-process implementations of the collaborator protocols.

Used for local runs and as the injected fakes in tests. Records are deep
copied on the way in and out so callers never share state with the store.
"""

import copy
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime

from booking_engine.features.booking_decisions.domain.errors import (
    BookingNotFoundError,
    ConcurrentModificationError,
    DuplicateBookingError,
)
from booking_engine.features.booking_decisions.domain.models import (
    Agent,
    BookingAuditEntry,
    BookingRequest,
    ReminderEntry,
    RouteOptimizationResult,
)
from booking_engine.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class InMemoryBookingRepository:
    def __init__(self, bookings: Iterable[BookingRequest] = ()):
        self._rows: dict[str, BookingRequest] = {b.id: copy.deepcopy(b) for b in bookings}

    async def get(self, booking_id: str) -> BookingRequest | None:
        row = self._rows.get(booking_id)
        return copy.deepcopy(row) if row else None

    async def add(self, booking: BookingRequest) -> BookingRequest:
        if booking.id in self._rows:
            logger.warning("Duplicate booking insert rejected", booking_id=booking.id)
            raise DuplicateBookingError(booking.id)
        self._rows[booking.id] = copy.deepcopy(booking)
        return copy.deepcopy(booking)

    async def update(
        self, booking: BookingRequest, expected_updated_at: datetime | None
    ) -> BookingRequest:
        current = self._rows.get(booking.id)
        if current is None:
            raise BookingNotFoundError(booking.id)
        if current.updated_at != expected_updated_at:
            logger.warning(
                "Stale booking write rejected",
                booking_id=booking.id,
                expected=str(expected_updated_at),
                actual=str(current.updated_at),
            )
            raise ConcurrentModificationError(booking.id, expected_updated_at, current.updated_at)
        self._rows[booking.id] = copy.deepcopy(booking)
        return copy.deepcopy(booking)

    async def list_approved_for_date(self, service_date: date) -> list[BookingRequest]:
        return [
            copy.deepcopy(row)
            for row in self._rows.values()
            if row.status == "approved" and row.service_date == service_date
        ]


class InMemoryAgentDirectory:
    def __init__(self, agents: Iterable[Agent] = ()):
        self._agents = {agent.id: agent for agent in agents}

    async def get_agent(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)


class InMemoryReminderStore:
    def __init__(self):
        self._by_booking: dict[str, list[ReminderEntry]] = defaultdict(list)

    async def list_for_booking(self, booking_id: str) -> list[ReminderEntry]:
        return copy.deepcopy(self._by_booking.get(booking_id, []))

    async def replace_for_booking(self, booking_id: str, entries: Iterable[ReminderEntry]) -> None:
        self._by_booking[booking_id] = copy.deepcopy(list(entries))

    async def get_entry(self, entry_id: str) -> ReminderEntry | None:
        for entries in self._by_booking.values():
            for entry in entries:
                if entry.id == entry_id:
                    return copy.deepcopy(entry)
        return None

    async def save_entry(self, entry: ReminderEntry) -> None:
        entries = self._by_booking[entry.booking_id]
        for index, existing in enumerate(entries):
            if existing.id == entry.id:
                entries[index] = copy.deepcopy(entry)
                return
        entries.append(copy.deepcopy(entry))

    async def list_pending_due(self, now: datetime) -> list[ReminderEntry]:
        due = [
            copy.deepcopy(entry)
            for entries in self._by_booking.values()
            for entry in entries
            if entry.status == "pending" and entry.scheduled_at <= now
        ]
        return sorted(due, key=lambda e: e.scheduled_at)


class InMemoryRouteCache:
    def __init__(self):
        self._results: dict[date, RouteOptimizationResult] = {}

    async def get(self, service_date: date) -> RouteOptimizationResult | None:
        return self._results.get(service_date)

    async def put(self, result: RouteOptimizationResult) -> None:
        self._results[result.date] = result

    async def invalidate(self, service_date: date) -> None:
        self._results.pop(service_date, None)


class InMemoryAuditSink:
    def __init__(self):
        self._entries: list[BookingAuditEntry] = []

    async def append(self, entry: BookingAuditEntry) -> None:
        self._entries.append(entry)

    async def history(self, booking_id: str) -> list[BookingAuditEntry]:
        rows = [e for e in self._entries if e.booking_id == booking_id]
        return sorted(rows, key=lambda e: e.changed_at, reverse=True)
