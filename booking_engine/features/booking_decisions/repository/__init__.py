"""
Repository subpackage: collaborator protocols and in-memory implementations.
"""

from .interfaces import (
    AgentDirectory,
    AuditSink,
    BookingRepository,
    DistanceMatrixProvider,
    ReminderStore,
    RouteResultCache,
)
from .memory import (
    InMemoryAgentDirectory,
    InMemoryAuditSink,
    InMemoryBookingRepository,
    InMemoryReminderStore,
    InMemoryRouteCache,
)

__all__ = [
    "AgentDirectory",
    "AuditSink",
    "BookingRepository",
    "DistanceMatrixProvider",
    "InMemoryAgentDirectory",
    "InMemoryAuditSink",
    "InMemoryBookingRepository",
    "InMemoryReminderStore",
    "InMemoryRouteCache",
    "ReminderStore",
    "RouteResultCache",
]
