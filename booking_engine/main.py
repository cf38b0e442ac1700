"""
Engine bootstrap.

Configures logging once and wires the workflow service to its collaborators.
Hosts that own real storage pass their own implementations; anything left
out falls back to the in-process stores.
"""

from booking_engine.config import Settings, settings
from booking_engine.features.booking_decisions.repository import (
    InMemoryAgentDirectory,
    InMemoryAuditSink,
    InMemoryBookingRepository,
    InMemoryReminderStore,
    InMemoryRouteCache,
)
from booking_engine.features.booking_decisions.repository.interfaces import (
    AgentDirectory,
    AuditSink,
    BookingRepository,
    DistanceMatrixProvider,
    ReminderStore,
    RouteResultCache,
)
from booking_engine.features.booking_decisions.services import BookingWorkflowService
from booking_engine.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_workflow_service(
    bookings: BookingRepository | None = None,
    agents: AgentDirectory | None = None,
    reminders: ReminderStore | None = None,
    route_cache: RouteResultCache | None = None,
    audit_sink: AuditSink | None = None,
    distance_provider: DistanceMatrixProvider | None = None,
    config: Settings | None = None,
) -> BookingWorkflowService:
    config = config or settings
    setup_logging(log_level=config.LOG_LEVEL)

    service = BookingWorkflowService(
        bookings=bookings if bookings is not None else InMemoryBookingRepository(),
        agents=agents if agents is not None else InMemoryAgentDirectory(),
        reminders=reminders if reminders is not None else InMemoryReminderStore(),
        route_cache=route_cache if route_cache is not None else InMemoryRouteCache(),
        audit_sink=audit_sink if audit_sink is not None else InMemoryAuditSink(),
        distance_provider=distance_provider,
        config=config,
    )
    logger.info(
        "Booking engine ready",
        environment=config.environment,
        auto_approval_threshold=config.AUTO_APPROVAL_THRESHOLD,
        manager_review_threshold=config.MANAGER_REVIEW_THRESHOLD,
        distance_source="provider" if distance_provider is not None else "haversine",
    )
    return service
