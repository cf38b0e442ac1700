"""
Error taxonomy for booking decisions.

Scoring and transition errors are raised to the caller; missing geocodes
are reported inside route results instead.
"""


class BookingEngineError(Exception):
    """Base exception for booking decision operations."""

    def __init__(self, message: str, booking_id: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.booking_id = booking_id
        self.recoverable = recoverable


class ValidationError(BookingEngineError):
    """A required scoring input is missing or outside its enumerated range."""

    def __init__(self, field: str, message: str | None = None, booking_id: str | None = None):
        super().__init__(message or f"Missing required field: {field}", booking_id, recoverable=False)
        self.field = field


class QuotaExceededError(BookingEngineError):
    """Agent has used up the monthly booking allowance."""

    def __init__(self, agent_id: str, quota: int, used: int, booking_id: str | None = None):
        super().__init__(
            f"Monthly booking quota exceeded for agent {agent_id} ({used}/{quota})",
            booking_id,
            recoverable=False,
        )
        self.agent_id = agent_id
        self.quota = quota
        self.used = used


class InvalidTransitionError(BookingEngineError):
    def __init__(self, booking_id: str | None, from_status: str, to_status: str):
        super().__init__(
            f"Cannot move booking from '{from_status}' to '{to_status}'",
            booking_id,
            recoverable=False,
        )
        self.from_status = from_status
        self.to_status = to_status


class ConcurrentModificationError(BookingEngineError):
    """The booking changed since the caller read it; refetch and retry."""

    def __init__(self, booking_id: str, expected: object, actual: object):
        super().__init__(
            f"Booking {booking_id} was modified concurrently (expected {expected}, found {actual})",
            booking_id,
        )
        self.expected = expected
        self.actual = actual


class BookingNotFoundError(BookingEngineError):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found", booking_id, recoverable=False)


class DuplicateBookingError(BookingEngineError):
    """A booking with this id already exists; submissions never overwrite."""

    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} already exists", booking_id, recoverable=False)


class AgentNotFoundError(BookingEngineError):
    def __init__(self, agent_id: str, booking_id: str | None = None):
        super().__init__(f"Agent {agent_id} not found", booking_id, recoverable=False)
        self.agent_id = agent_id


class ReminderNotFoundError(BookingEngineError):
    def __init__(self, entry_id: str):
        super().__init__(f"Reminder {entry_id} not found", recoverable=False)
        self.entry_id = entry_id


class InsufficientDataError(BookingEngineError):
    """Non-fatal: a waypoint cannot take part in route optimization."""

    def __init__(self, booking_id: str, missing: str = "coordinates"):
        super().__init__(f"Booking {booking_id} lacks {missing}", booking_id)
        self.missing = missing

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InsufficientDataError):
            return NotImplemented
        return (self.booking_id, self.missing) == (other.booking_id, other.missing)

    def __hash__(self) -> int:
        return hash((self.booking_id, self.missing))
