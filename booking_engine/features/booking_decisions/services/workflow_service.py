"""
Booking workflow service - runs submissions and manager commands through
the scoring, approval, routing and reminder stages.

All reads and writes go through the injected collaborators. The service
itself holds no booking state, so one instance can serve many requests;
writes are guarded by the repository's compare-and-set on updated_at.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, date, datetime

from booking_engine.config import Settings, settings as default_settings
from booking_engine.features.booking_decisions.domain.errors import (
    AgentNotFoundError,
    BookingNotFoundError,
    ConcurrentModificationError,
    DuplicateBookingError,
    InvalidTransitionError,
    QuotaExceededError,
    ReminderNotFoundError,
    ValidationError,
)
from booking_engine.features.booking_decisions.domain.models import (
    BookingAuditEntry,
    BookingRequest,
    BookingStatus,
    ReminderEntry,
    RouteOptimizationResult,
    SubmissionOutcome,
)
from booking_engine.features.booking_decisions.pipeline.approval import ApprovalDecider, stamp
from booking_engine.features.booking_decisions.pipeline.reminders import ReminderScheduler
from booking_engine.features.booking_decisions.pipeline.routing import (
    RouteOptimizer,
    waypoints_from_bookings,
)
from booking_engine.features.booking_decisions.pipeline.scoring import PriorityScorer
from booking_engine.features.booking_decisions.repository.interfaces import (
    AgentDirectory,
    AuditSink,
    BookingRepository,
    DistanceMatrixProvider,
    ReminderStore,
    RouteResultCache,
)
from booking_engine.infrastructure.audit import AuditLogger
from booking_engine.infrastructure.observability.logging import get_logger, log_transition

logger = get_logger(__name__)


class BookingWorkflowService:
    def __init__(
        self,
        bookings: BookingRepository,
        agents: AgentDirectory,
        reminders: ReminderStore,
        route_cache: RouteResultCache,
        audit_sink: AuditSink | None = None,
        distance_provider: DistanceMatrixProvider | None = None,
        config: Settings | None = None,
    ):
        self.config = config or default_settings
        self.bookings = bookings
        self.agents = agents
        self.reminders = reminders
        self.route_cache = route_cache
        self.audit = AuditLogger(audit_sink)

        self.scorer = PriorityScorer(self.config)
        self.decider = ApprovalDecider(self.config)
        self.optimizer = RouteOptimizer(self.config, distance_provider)
        self.reminder_scheduler = ReminderScheduler(self.config)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, booking: BookingRequest, now: datetime | None = None) -> SubmissionOutcome:
        """
        Score a new booking and place it in the approval workflow.

        Raises:
            AgentNotFoundError: If the owning agent is unknown
            DuplicateBookingError: If a booking with the same id already exists
            QuotaExceededError: If the agent has no bookings left this month
            ValidationError: If a required scoring input is missing
        """
        current = now or datetime.now(UTC)
        if booking.status != "pending":
            raise InvalidTransitionError(booking.id, booking.status, "pending")
        if await self.bookings.get(booking.id) is not None:
            logger.warning("Submission rejected - duplicate booking id", booking_id=booking.id)
            raise DuplicateBookingError(booking.id)

        agent = await self.agents.get_agent(booking.agent_id)
        if agent is None:
            logger.warning("Submission rejected - unknown agent", booking_id=booking.id, agent_id=booking.agent_id)
            raise AgentNotFoundError(booking.agent_id, booking_id=booking.id)

        if self.config.ENFORCE_MONTHLY_QUOTA and agent.monthly_used >= agent.monthly_quota:
            logger.warning(
                "Submission rejected - quota exceeded",
                booking_id=booking.id,
                agent_id=agent.id,
                quota=agent.monthly_quota,
                used=agent.monthly_used,
            )
            raise QuotaExceededError(agent.id, agent.monthly_quota, agent.monthly_used, booking.id)

        score = self.scorer.score(booking, agent, now=current)

        prepared = dataclasses.replace(
            booking,
            estimated_duration_minutes=(
                booking.estimated_duration_minutes
                or self.config.SHOOT_DURATION_MINUTES.get(booking.shoot_complexity, 90)
            ),
            created_at=booking.created_at or current,
        )
        placed, outcome = self.decider.place(prepared, score.score, now=current)
        stored = await self.bookings.add(placed)

        await self.audit.log(
            booking_id=stored.id,
            action="submitted",
            from_status=None,
            to_status=stored.status,
            actor_id=stored.agent_id,
            metadata={"priority_score": score.score, "outcome": outcome},
            now=current,
        )
        if stored.status != "pending":
            log_transition(stored.id, "pending", stored.status, automatic=True)

        if stored.status == "approved":
            await self._on_enter_approved(stored, current)

        logger.info(
            "Booking submitted",
            booking_id=stored.id,
            agent_id=stored.agent_id,
            priority_score=score.score,
            outcome=outcome,
            status=stored.status,
        )
        return SubmissionOutcome(booking=stored, score=score, outcome=outcome)

    # ------------------------------------------------------------------
    # Manager / agent commands
    # ------------------------------------------------------------------

    async def approve(
        self,
        booking_id: str,
        *,
        expected_status: BookingStatus | None = None,
        expected_updated_at: datetime | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
        scheduled_date: date | None = None,
        scheduled_time: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        """Manager approval; optionally assigns the calendar slot in the same write."""
        return await self._transition(
            booking_id,
            "approved",
            expected_status=expected_status,
            expected_updated_at=expected_updated_at,
            actor_id=actor_id,
            notes=notes,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            now=now,
        )

    async def decline(
        self,
        booking_id: str,
        *,
        expected_status: BookingStatus | None = None,
        expected_updated_at: datetime | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        return await self._transition(
            booking_id,
            "declined",
            expected_status=expected_status,
            expected_updated_at=expected_updated_at,
            actor_id=actor_id,
            notes=notes,
            now=now,
        )

    async def complete(
        self,
        booking_id: str,
        *,
        expected_status: BookingStatus | None = None,
        expected_updated_at: datetime | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        return await self._transition(
            booking_id,
            "completed",
            expected_status=expected_status,
            expected_updated_at=expected_updated_at,
            actor_id=actor_id,
            notes=notes,
            now=now,
        )

    async def cancel(
        self,
        booking_id: str,
        *,
        expected_status: BookingStatus | None = None,
        expected_updated_at: datetime | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        return await self._transition(
            booking_id,
            "cancelled",
            expected_status=expected_status,
            expected_updated_at=expected_updated_at,
            actor_id=actor_id,
            notes=notes,
            now=now,
        )

    async def reschedule(
        self,
        booking_id: str,
        new_date: date,
        new_time: str | None = None,
        *,
        expected_updated_at: datetime | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        """
        Move an approved booking to a new slot.

        Pending reminders are cancelled and recomputed against the new shoot
        time; route results for both the old and the new day are dropped.
        """
        current = now or datetime.now(UTC)
        booking = await self._load(booking_id)
        self._check_expected(booking, None, expected_updated_at)
        if booking.status != "approved":
            raise InvalidTransitionError(booking.id, booking.status, "approved")

        old_day = booking.service_date
        moved = dataclasses.replace(
            booking,
            scheduled_date=new_date,
            scheduled_time=new_time or booking.scheduled_time,
            manager_notes=self.decider.append_notes(booking.manager_notes, notes),
            updated_at=stamp(booking.updated_at, current),
        )
        # Validates the new slot before anything is written.
        self.reminder_scheduler.event_time(moved)

        stored = await self.bookings.update(moved, booking.updated_at)

        existing = await self.reminders.list_for_booking(stored.id)
        await self.reminders.replace_for_booking(
            stored.id, self.reminder_scheduler.reschedule(existing, stored, current)
        )
        await self._invalidate_days(old_day, stored.service_date)

        await self.audit.log(
            booking_id=stored.id,
            action="rescheduled",
            from_status=stored.status,
            to_status=stored.status,
            actor_id=actor_id,
            notes=notes,
            metadata={
                "from_date": old_day.isoformat() if old_day else None,
                "to_date": new_date.isoformat(),
                "to_time": stored.scheduled_time,
            },
            now=current,
        )
        logger.info(
            "Booking rescheduled",
            booking_id=stored.id,
            from_date=old_day.isoformat() if old_day else None,
            to_date=new_date.isoformat(),
            to_time=stored.scheduled_time,
        )
        return stored

    # ------------------------------------------------------------------
    # Routing and reminders
    # ------------------------------------------------------------------

    async def optimize_day(
        self, service_date: date, now: datetime | None = None, force: bool = False
    ) -> RouteOptimizationResult:
        """
        Route for one service day, from cache unless invalidated or forced.

        Callers must not run two optimizations for the same day at once.
        """
        if not force:
            cached = await self.route_cache.get(service_date)
            if cached is not None:
                logger.debug("Returning cached route", date=service_date.isoformat())
                return cached

        approved = await self.bookings.list_approved_for_date(service_date)
        waypoints = waypoints_from_bookings(
            approved, self.config.SHOOT_DURATION_MINUTES.get("standard", 90)
        )
        result = self.optimizer.optimize(waypoints, service_date, now=now)
        await self.route_cache.put(result)
        return result

    async def accept_route(
        self,
        service_date: date,
        *,
        actor_id: str | None = None,
        day_start: str | None = None,
        now: datetime | None = None,
    ) -> list[BookingRequest]:
        """
        Apply the optimized route's suggested start times to the day's bookings.

        Each moved booking is written through the compare-and-set update and
        gets its reminders recomputed. Stops that would start after midnight
        are left at their current time. Returns the bookings that moved.
        """
        current = now or datetime.now(UTC)
        result = await self.optimize_day(service_date, now=current)
        approved = await self.bookings.list_approved_for_date(service_date)
        by_id = {b.id: b for b in approved}
        waypoints = waypoints_from_bookings(
            approved, self.config.SHOOT_DURATION_MINUTES.get("standard", 90)
        )

        moved_bookings: list[BookingRequest] = []
        for stop in self.optimizer.suggest_start_times(result, waypoints, day_start):
            booking = by_id.get(stop.booking_id)
            if booking is None:
                continue
            if stop.start_at.date() != service_date:
                logger.warning(
                    "Suggested start runs past midnight - keeping current time",
                    booking_id=booking.id,
                    date=service_date.isoformat(),
                )
                continue
            if booking.scheduled_time == stop.start_time:
                continue

            note = f"Route optimized - new time: {stop.start_time}"
            moved = dataclasses.replace(
                booking,
                scheduled_date=service_date,
                scheduled_time=stop.start_time,
                manager_notes=self.decider.append_notes(booking.manager_notes, note),
                updated_at=stamp(booking.updated_at, current),
            )
            self.reminder_scheduler.event_time(moved)
            stored = await self.bookings.update(moved, booking.updated_at)

            existing = await self.reminders.list_for_booking(stored.id)
            await self.reminders.replace_for_booking(
                stored.id, self.reminder_scheduler.reschedule(existing, stored, current)
            )
            await self.audit.log(
                booking_id=stored.id,
                action="route_accepted",
                from_status=stored.status,
                to_status=stored.status,
                actor_id=actor_id,
                notes=note,
                metadata={"from_time": booking.scheduled_time, "to_time": stored.scheduled_time},
                now=current,
            )
            moved_bookings.append(stored)

        await self._invalidate_days(service_date)
        logger.info(
            "Route accepted",
            date=service_date.isoformat(),
            stops=len(result.optimized_order),
            moved=len(moved_bookings),
        )
        return moved_bookings

    async def due_reminders(self, now: datetime | None = None) -> list[ReminderEntry]:
        """Pending reminders whose send time has arrived, for the dispatcher."""
        return await self.reminders.list_pending_due(now or datetime.now(UTC))

    async def reminders_for(self, booking_id: str) -> list[ReminderEntry]:
        return await self.reminders.list_for_booking(booking_id)

    async def record_reminder_delivery(
        self, entry_id: str, delivered: bool, now: datetime | None = None
    ) -> ReminderEntry:
        """Dispatcher callback: flip to sent on success, count the attempt on failure."""
        entry = await self.reminders.get_entry(entry_id)
        if entry is None:
            raise ReminderNotFoundError(entry_id)

        if delivered:
            updated = self.reminder_scheduler.mark_sent(entry, now)
        else:
            updated = self.reminder_scheduler.record_failure(entry)
            logger.warning(
                "Reminder delivery failed",
                reminder_id=entry_id,
                booking_id=entry.booking_id,
                attempts=updated.attempts,
            )
        await self.reminders.save_entry(updated)
        return updated

    async def history(self, booking_id: str) -> list[BookingAuditEntry]:
        return await self.audit.history(booking_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(self, booking_id: str) -> BookingRequest:
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    @staticmethod
    def _check_expected(
        booking: BookingRequest,
        expected_status: BookingStatus | None,
        expected_updated_at: datetime | None,
    ) -> None:
        if expected_status is not None and booking.status != expected_status:
            raise ConcurrentModificationError(booking.id, expected_status, booking.status)
        if expected_updated_at is not None and booking.updated_at != expected_updated_at:
            raise ConcurrentModificationError(booking.id, expected_updated_at, booking.updated_at)

    async def _transition(
        self,
        booking_id: str,
        to_status: BookingStatus,
        *,
        expected_status: BookingStatus | None,
        expected_updated_at: datetime | None,
        actor_id: str | None,
        notes: str | None,
        scheduled_date: date | None = None,
        scheduled_time: str | None = None,
        now: datetime | None = None,
    ) -> BookingRequest:
        current = now or datetime.now(UTC)
        booking = await self._load(booking_id)

        updated = self.decider.transition(
            booking,
            to_status,
            expected_status=expected_status,
            expected_updated_at=expected_updated_at,
            notes=notes,
            now=current,
        )
        if scheduled_date is not None or scheduled_time is not None:
            updated = dataclasses.replace(
                updated,
                scheduled_date=scheduled_date or updated.scheduled_date,
                scheduled_time=scheduled_time or updated.scheduled_time,
            )
        if to_status == "approved":
            # Reminders need a shoot time; reject before writing anything.
            try:
                self.reminder_scheduler.event_time(updated)
            except ValidationError:
                logger.warning("Approval rejected - invalid shoot slot", booking_id=booking.id)
                raise

        stored = await self.bookings.update(updated, booking.updated_at)
        log_transition(stored.id, booking.status, stored.status, actor_id=actor_id)

        if stored.status == "approved":
            await self._on_enter_approved(stored, current)
        elif booking.status == "approved":
            await self._on_leave_approved(booking, stored, current)

        await self.audit.log(
            booking_id=stored.id,
            action=to_status,
            from_status=booking.status,
            to_status=stored.status,
            actor_id=actor_id,
            notes=notes,
            now=current,
        )
        return stored

    async def _on_enter_approved(self, booking: BookingRequest, now: datetime) -> None:
        existing = await self.reminders.list_for_booking(booking.id)
        entries = (
            self.reminder_scheduler.reschedule(existing, booking, now)
            if existing
            else self.reminder_scheduler.schedule(booking, now)
        )
        await self.reminders.replace_for_booking(booking.id, entries)
        await self._invalidate_days(booking.service_date)

    async def _on_leave_approved(
        self, previous: BookingRequest, booking: BookingRequest, now: datetime
    ) -> None:
        existing = await self.reminders.list_for_booking(booking.id)
        await self.reminders.replace_for_booking(
            booking.id, self.reminder_scheduler.cancel(existing, now)
        )
        await self._invalidate_days(previous.service_date, booking.service_date)

    async def _invalidate_days(self, *days: date | None) -> None:
        for day in dict.fromkeys(d for d in days if d is not None):
            await self.route_cache.invalidate(day)
            logger.debug("Route cache invalidated", date=day.isoformat())
