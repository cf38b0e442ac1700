"""
Domain models for the booking decision feature.

Records are plain dataclasses so repositories, pipeline stages and the
workflow service can share them without pulling in persistence concerns.
The agent profile is owned by the user directory and arrives validated.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:  # pragma: no cover
    from .errors import InsufficientDataError

PropertyValueTier = Literal["under_500k", "500k_1m", "1m_2m", "over_2m"]
ShootComplexity = Literal["quick", "standard", "complex"]
AgentTier = Literal["standard", "premium", "elite"]
BookingStatus = Literal["pending", "approved", "declined", "completed", "cancelled"]
ApprovalOutcome = Literal["auto_approve", "manager_review", "auto_decline"]
ReminderStatus = Literal["pending", "sent", "cancelled"]

PROPERTY_VALUE_TIERS: tuple[str, ...] = ("under_500k", "500k_1m", "1m_2m", "over_2m")
SHOOT_COMPLEXITIES: tuple[str, ...] = ("quick", "standard", "complex")
AGENT_TIERS: tuple[str, ...] = ("standard", "premium", "elite")

PROPERTY_VALUE_LABELS = {
    "under_500k": "Under $500K",
    "500k_1m": "$500K - $1M",
    "1m_2m": "$1M - $2M",
    "over_2m": "$2M+",
}
SHOOT_COMPLEXITY_LABELS = {
    "quick": "Quick (30-45 min)",
    "standard": "Standard (90 min)",
    "complex": "Complex (3+ hrs)",
}


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(slots=True)
class BookingRequest:
    """One videography request for a single property."""

    id: str
    agent_id: str
    property_value_tier: PropertyValueTier | None
    shoot_complexity: ShootComplexity | None
    preferred_date: date | None
    backup_dates: list[date] = field(default_factory=list)
    is_flexible: bool = False
    is_urgent: bool = False
    coordinates: Coordinates | None = None
    property_address: str | None = None
    estimated_duration_minutes: int | None = None
    priority_score: int | None = None
    status: BookingStatus = "pending"
    scheduled_date: date | None = None
    scheduled_time: str | None = None  # "HH:MM"
    manager_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def service_date(self) -> date | None:
        """Day the shoot occupies: the calendar assignment if any, else the preferred date."""
        return self.scheduled_date or self.preferred_date


class Agent(BaseModel):
    """
    Scoring context for the agent who owns a booking (read-only).

    Only the tier feeds the score. Directory payloads may carry extra
    fields (performance ratings and the like); they are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    tier: str
    monthly_quota: int = Field(default=0, ge=0)
    monthly_used: int = Field(default=0, ge=0)
    name: str | None = None
    email: str | None = None

    @property
    def quota_remaining(self) -> int:
        return max(self.monthly_quota - self.monthly_used, 0)


@dataclass(frozen=True, slots=True)
class ScoreComponent:
    category: str
    points: int
    max: int
    description: str


@dataclass(frozen=True, slots=True)
class PriorityScore:
    score: int
    breakdown: tuple[ScoreComponent, ...]


@dataclass(frozen=True, slots=True)
class Waypoint:
    """Geocoded stop derived from an approved booking."""

    booking_id: str
    coordinates: Coordinates | None
    duration_minutes: int

    @classmethod
    def from_booking(cls, booking: BookingRequest, default_minutes: int = 90) -> "Waypoint":
        return cls(
            booking_id=booking.id,
            coordinates=booking.coordinates,
            duration_minutes=booking.estimated_duration_minutes or default_minutes,
        )


@dataclass(frozen=True, slots=True)
class RouteLeg:
    from_booking_id: str
    to_booking_id: str
    distance_meters: float
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class RouteOptimizationResult:
    """Immutable snapshot; a new result supersedes it when inputs change."""

    date: date
    optimized_order: tuple[str, ...]
    total_distance_meters: float
    total_duration_seconds: float
    computed_at: datetime
    excluded: tuple["InsufficientDataError", ...] = ()
    legs: tuple[RouteLeg, ...] = ()
    baseline_distance_meters: float = 0.0
    baseline_duration_seconds: float = 0.0
    distance_source: Literal["haversine", "provider"] = "haversine"

    @property
    def distance_saved_meters(self) -> float:
        return max(0.0, self.baseline_distance_meters - self.total_distance_meters)

    @property
    def time_saved_seconds(self) -> float:
        return max(0.0, self.baseline_duration_seconds - self.total_duration_seconds)

    @property
    def excluded_booking_ids(self) -> tuple[str, ...]:
        return tuple(report.booking_id for report in self.excluded)


@dataclass(frozen=True, slots=True)
class WaypointCluster:
    id: int
    booking_ids: tuple[str, ...]
    center: Coordinates
    radius_miles: float


@dataclass(frozen=True, slots=True)
class StopTime:
    """Suggested slot for one stop; full datetimes so late days never wrap."""

    booking_id: str
    start_at: datetime
    end_at: datetime
    travel_minutes_before: int

    @property
    def start_time(self) -> str:
        return self.start_at.strftime("%H:%M")

    @property
    def end_time(self) -> str:
        return self.end_at.strftime("%H:%M")

    @property
    def crosses_midnight(self) -> bool:
        return self.end_at.date() > self.start_at.date()


@dataclass(slots=True)
class ReminderEntry:
    """One reminder slot of a booking's schedule."""

    id: str
    booking_id: str
    offset: timedelta
    scheduled_at: datetime
    status: ReminderStatus = "pending"
    attempts: int = 0
    sent_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def label(self) -> str:
        minutes = int(self.offset.total_seconds() // 60)
        if minutes % (24 * 60) == 0:
            return f"{minutes // (24 * 60)}d"
        if minutes % 60 == 0:
            return f"{minutes // 60}h"
        return f"{minutes}m"


@dataclass(frozen=True, slots=True)
class BookingAuditEntry:
    """Represents a booking_audit row."""

    booking_id: str
    action: str
    from_status: BookingStatus | None
    to_status: BookingStatus | None
    changed_at: datetime
    actor_id: str | None = None
    notes: str | None = None
    metadata: dict | None = None


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    booking: BookingRequest
    score: PriorityScore
    outcome: ApprovalOutcome
