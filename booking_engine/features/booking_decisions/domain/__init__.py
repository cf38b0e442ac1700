"""
Domain subpackage for the booking decision feature.
"""

from .errors import (
    AgentNotFoundError,
    BookingEngineError,
    BookingNotFoundError,
    ConcurrentModificationError,
    DuplicateBookingError,
    InsufficientDataError,
    InvalidTransitionError,
    QuotaExceededError,
    ReminderNotFoundError,
    ValidationError,
)
from .models import (
    Agent,
    BookingAuditEntry,
    BookingRequest,
    Coordinates,
    PriorityScore,
    ReminderEntry,
    RouteLeg,
    RouteOptimizationResult,
    ScoreComponent,
    StopTime,
    SubmissionOutcome,
    Waypoint,
    WaypointCluster,
)

__all__ = [
    "Agent",
    "AgentNotFoundError",
    "BookingAuditEntry",
    "BookingEngineError",
    "BookingNotFoundError",
    "BookingRequest",
    "ConcurrentModificationError",
    "Coordinates",
    "DuplicateBookingError",
    "InsufficientDataError",
    "InvalidTransitionError",
    "PriorityScore",
    "QuotaExceededError",
    "ReminderEntry",
    "ReminderNotFoundError",
    "RouteLeg",
    "RouteOptimizationResult",
    "ScoreComponent",
    "StopTime",
    "SubmissionOutcome",
    "ValidationError",
    "Waypoint",
    "WaypointCluster",
]
