from datetime import UTC, datetime, timedelta

import numpy as np
import pytest

from booking_engine.config import Settings
from booking_engine.features.booking_decisions.domain.models import (
    Agent,
    BookingRequest,
    Coordinates,
)
from booking_engine.features.booking_decisions.repository import (
    InMemoryAgentDirectory,
    InMemoryAuditSink,
    InMemoryBookingRepository,
    InMemoryReminderStore,
    InMemoryRouteCache,
)
from booking_engine.features.booking_decisions.services import BookingWorkflowService

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

AUSTIN = Coordinates(lat=30.2672, lng=-97.7431)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def config():
    return Settings()


@pytest.fixture
def agents():
    return {
        "agent-elite": Agent(id="agent-elite", tier="elite", monthly_quota=10, monthly_used=2),
        "agent-premium": Agent(id="agent-premium", tier="premium", monthly_quota=8, monthly_used=1),
        "agent-standard": Agent(id="agent-standard", tier="standard", monthly_quota=4, monthly_used=0),
        "agent-maxed": Agent(id="agent-maxed", tier="elite", monthly_quota=3, monthly_used=3),
    }


@pytest.fixture
def build_booking():
    """Factory for booking requests; defaults score 100 for agent-elite at NOW."""

    def _build(**overrides):
        fields = {
            "id": "bk-1",
            "agent_id": "agent-elite",
            "property_value_tier": "over_2m",
            "shoot_complexity": "quick",
            "preferred_date": NOW.date() + timedelta(days=20),
            "is_flexible": True,
            "coordinates": AUSTIN,
            "property_address": "100 Congress Ave, Austin, TX",
        }
        fields.update(overrides)
        return BookingRequest(**fields)

    return _build


class FakeDistanceProvider:
    """Serves preset matrices whatever points are asked for."""

    def __init__(self, meters: np.ndarray, seconds: np.ndarray):
        self.meters = meters
        self.seconds = seconds
        self.calls = 0

    def matrix(self, points):
        self.calls += 1
        return self.meters, self.seconds


class FailingDistanceProvider:
    def __init__(self):
        self.calls = 0

    def matrix(self, points):
        self.calls += 1
        raise ConnectionError("distance service unavailable")


class FailingAuditSink:
    async def append(self, entry):
        raise RuntimeError("audit table locked")

    async def history(self, booking_id):
        return []


@pytest.fixture
def failing_provider():
    return FailingDistanceProvider()


@pytest.fixture
def fixed_provider():
    def _make(meters, seconds):
        return FakeDistanceProvider(np.asarray(meters, dtype=float), np.asarray(seconds, dtype=float))

    return _make


@pytest.fixture
def failing_audit_sink():
    return FailingAuditSink()


@pytest.fixture
def booking_repo():
    return InMemoryBookingRepository()


@pytest.fixture
def reminder_store():
    return InMemoryReminderStore()


@pytest.fixture
def route_cache():
    return InMemoryRouteCache()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def workflow(config, agents, booking_repo, reminder_store, route_cache, audit_sink):
    return BookingWorkflowService(
        bookings=booking_repo,
        agents=InMemoryAgentDirectory(agents.values()),
        reminders=reminder_store,
        route_cache=route_cache,
        audit_sink=audit_sink,
        config=config,
    )
