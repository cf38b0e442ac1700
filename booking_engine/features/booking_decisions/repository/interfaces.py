"""
Collaborator contracts for the booking decision feature.

Storage, the agent directory and the distance provider live outside this
package; the workflow service only talks to them through these protocols.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Protocol

import numpy as np

from booking_engine.features.booking_decisions.domain.models import (
    Agent,
    BookingAuditEntry,
    BookingRequest,
    Coordinates,
    ReminderEntry,
    RouteOptimizationResult,
)


class BookingRepository(Protocol):
    async def get(self, booking_id: str) -> BookingRequest | None: ...

    async def add(self, booking: BookingRequest) -> BookingRequest:
        """Insert a new booking; raises DuplicateBookingError if the id is taken."""
        ...

    async def update(
        self, booking: BookingRequest, expected_updated_at: datetime | None
    ) -> BookingRequest:
        """
        Persist a new booking state.

        Compare-and-set on updated_at: raises ConcurrentModificationError
        when the stored row no longer carries expected_updated_at.
        """
        ...

    async def list_approved_for_date(self, service_date: date) -> list[BookingRequest]: ...


class AgentDirectory(Protocol):
    async def get_agent(self, agent_id: str) -> Agent | None: ...


class ReminderStore(Protocol):
    async def list_for_booking(self, booking_id: str) -> list[ReminderEntry]: ...

    async def replace_for_booking(
        self, booking_id: str, entries: Iterable[ReminderEntry]
    ) -> None: ...

    async def get_entry(self, entry_id: str) -> ReminderEntry | None: ...

    async def save_entry(self, entry: ReminderEntry) -> None: ...

    async def list_pending_due(self, now: datetime) -> list[ReminderEntry]: ...


class RouteResultCache(Protocol):
    async def get(self, service_date: date) -> RouteOptimizationResult | None: ...

    async def put(self, result: RouteOptimizationResult) -> None: ...

    async def invalidate(self, service_date: date) -> None: ...


class AuditSink(Protocol):
    async def append(self, entry: BookingAuditEntry) -> None: ...

    async def history(self, booking_id: str) -> list[BookingAuditEntry]: ...


class DistanceMatrixProvider(Protocol):
    def matrix(self, points: Sequence[Coordinates]) -> tuple[np.ndarray, np.ndarray]:
        """Return (meters, seconds) matrices for the given points, in order."""
        ...
