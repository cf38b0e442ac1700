"""
Priority scoring service - turns a booking request and its agent into a
0-100 triage score with a per-category breakdown.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime

from booking_engine.config import Settings, settings as default_settings
from booking_engine.features.booking_decisions.domain.errors import ValidationError
from booking_engine.features.booking_decisions.domain.models import (
    AGENT_TIERS,
    PROPERTY_VALUE_LABELS,
    PROPERTY_VALUE_TIERS,
    SHOOT_COMPLEXITIES,
    SHOOT_COMPLEXITY_LABELS,
    Agent,
    BookingRequest,
    PriorityScore,
    ScoreComponent,
)
from booking_engine.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class PriorityScorer:
    """
    Weighted sum of independent, individually capped categories.

    Category order in the breakdown is fixed. The scorer keeps no state
    between calls, so one instance can serve concurrent submissions.
    """

    REQUIRED_FIELDS = ("property_value_tier", "shoot_complexity", "preferred_date")

    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    def score(
        self, booking: BookingRequest, agent: Agent, now: datetime | None = None
    ) -> PriorityScore:
        """
        Score a booking request.

        Args:
            booking: Request being triaged
            agent: Owner of the request
            now: Reference time for lead time (defaults to current UTC time)

        Returns:
            PriorityScore with the clamped total and the ordered breakdown

        Raises:
            ValidationError: If a required input is missing or not a known value
        """
        self._validate(booking, agent)
        reference = now or datetime.now(UTC)

        breakdown = (
            self._property_value(booking),
            self._complexity(booking),
            self._agent_tier(agent),
            self._flexibility(booking),
            self._lead_time(booking.preferred_date, reference),
        )
        total = max(0, min(100, sum(component.points for component in breakdown)))

        logger.debug(
            "Booking scored",
            booking_id=booking.id,
            agent_id=agent.id,
            score=total,
            components={c.category: c.points for c in breakdown},
        )
        return PriorityScore(score=total, breakdown=breakdown)

    def _validate(self, booking: BookingRequest, agent: Agent) -> None:
        for field_name in self.REQUIRED_FIELDS:
            if getattr(booking, field_name, None) is None:
                logger.warning(
                    "Scoring rejected - missing input", booking_id=booking.id, field=field_name
                )
                raise ValidationError(field_name, booking_id=booking.id)

        allowed = {
            "property_value_tier": (booking.property_value_tier, PROPERTY_VALUE_TIERS),
            "shoot_complexity": (booking.shoot_complexity, SHOOT_COMPLEXITIES),
            "agent.tier": (agent.tier if agent else None, AGENT_TIERS),
        }
        for field_name, (value, choices) in allowed.items():
            if value is None:
                raise ValidationError(field_name, booking_id=booking.id)
            if value not in choices:
                logger.warning(
                    "Scoring rejected - unknown value",
                    booking_id=booking.id,
                    field=field_name,
                    value=value,
                )
                raise ValidationError(
                    field_name,
                    f"Invalid {field_name}: {value!r} (expected one of {', '.join(choices)})",
                    booking_id=booking.id,
                )

        if not isinstance(booking.preferred_date, date):
            raise ValidationError(
                "preferred_date", "preferred_date must be a date", booking_id=booking.id
            )

    def _property_value(self, booking: BookingRequest) -> ScoreComponent:
        cap = self.config.PROPERTY_VALUE_MAX
        points = self.config.PROPERTY_VALUE_POINTS.get(booking.property_value_tier, 0)
        return ScoreComponent(
            category="Property Value",
            points=min(points, cap),
            max=cap,
            description=PROPERTY_VALUE_LABELS[booking.property_value_tier],
        )

    def _complexity(self, booking: BookingRequest) -> ScoreComponent:
        cap = self.config.COMPLEXITY_MAX
        points = self.config.COMPLEXITY_POINTS.get(booking.shoot_complexity, 0)
        description = SHOOT_COMPLEXITY_LABELS[booking.shoot_complexity]
        if booking.is_urgent and points < self.config.URGENT_COMPLEXITY_POINTS:
            points = self.config.URGENT_COMPLEXITY_POINTS
            description = f"{description} - flagged urgent"
        return ScoreComponent(
            category="Shoot Complexity",
            points=min(points, cap),
            max=cap,
            description=description,
        )

    def _agent_tier(self, agent: Agent) -> ScoreComponent:
        cap = self.config.AGENT_TIER_MAX
        points = self.config.AGENT_TIER_POINTS.get(agent.tier, 0)
        return ScoreComponent(
            category="Agent Tier",
            points=min(points, cap),
            max=cap,
            description=f"{agent.tier.capitalize()} tier",
        )

    def _flexibility(self, booking: BookingRequest) -> ScoreComponent:
        cap = self.config.FLEXIBILITY_MAX
        return ScoreComponent(
            category="Flexibility",
            points=cap if booking.is_flexible else 0,
            max=cap,
            description=(
                "Flexible for optimization" if booking.is_flexible else "Fixed date required"
            ),
        )

    def _lead_time(self, preferred: date, now: datetime) -> ScoreComponent:
        cap = self.config.LEAD_TIME_MAX
        plateau = self.config.LEAD_TIME_PLATEAU_DAYS
        days = self.days_in_advance(preferred, now)

        if days <= 0:
            points = 0
            description = "Less than 1 day notice"
        else:
            points = math.floor(cap * min(days, plateau) / plateau)
            if days >= plateau:
                description = f"{plateau}+ days advance notice"
            else:
                description = f"{days} day{'s' if days != 1 else ''} advance notice"

        return ScoreComponent(
            category="Lead Time",
            points=min(points, cap),
            max=cap,
            description=description,
        )

    @staticmethod
    def days_in_advance(preferred: date, now: datetime) -> int:
        """Whole calendar days between the reference time and the preferred date."""
        if isinstance(preferred, datetime):
            preferred = preferred.date()
        today = now.astimezone(UTC).date() if now.tzinfo else now.date()
        return (preferred - today).days


# Singleton so callers without custom settings can share one scorer.
priority_scorer = PriorityScorer()
