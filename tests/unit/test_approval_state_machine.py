from datetime import timedelta

import pytest

from booking_engine.config import Settings
from booking_engine.features.booking_decisions.domain.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
)
from booking_engine.features.booking_decisions.pipeline.approval import (
    TRANSITIONS,
    ApprovalDecider,
    stamp,
)

STATUSES = ["pending", "approved", "declined", "completed", "cancelled"]
LEGAL = {
    ("pending", "approved"),
    ("pending", "declined"),
    ("approved", "completed"),
    ("approved", "cancelled"),
}
ILLEGAL = [(a, b) for a in STATUSES for b in STATUSES if (a, b) not in LEGAL]


@pytest.mark.parametrize(
    ("score", "flexible", "expected"),
    [
        (100, False, "auto_approve"),
        (80, False, "auto_approve"),
        (79, False, "manager_review"),
        (60, False, "manager_review"),
        (59, False, "auto_decline"),
        (0, False, "auto_decline"),
        (59, True, "manager_review"),
        (10, True, "manager_review"),
        (85, True, "auto_approve"),
    ],
)
def test_decide_thresholds(score, flexible, expected):
    assert ApprovalDecider(Settings()).decide(score, is_flexible=flexible) == expected


def test_flexibility_never_promotes_to_auto_approve():
    decider = ApprovalDecider(Settings())

    assert decider.decide(79, is_flexible=True) == "manager_review"


def test_thresholds_come_from_config():
    decider = ApprovalDecider(Settings(AUTO_APPROVAL_THRESHOLD=90, MANAGER_REVIEW_THRESHOLD=70))

    assert decider.decide(85) == "manager_review"
    assert decider.decide(65) == "auto_decline"
    assert decider.decide(90) == "auto_approve"


@pytest.mark.parametrize(
    ("score", "flexible", "status"),
    [(92, False, "approved"), (70, False, "pending"), (30, False, "declined"), (30, True, "pending")],
)
def test_place_sets_initial_status(build_booking, now, score, flexible, status):
    booking = build_booking(is_flexible=flexible)

    placed, _ = ApprovalDecider().place(booking, score, now=now)

    assert placed.status == status
    assert placed.priority_score == score
    assert placed.updated_at == now
    assert booking.status == "pending"


def test_place_rejects_already_decided_booking(build_booking, now):
    with pytest.raises(InvalidTransitionError):
        ApprovalDecider().place(build_booking(status="approved"), 95, now=now)


def test_transition_table_matches_lifecycle():
    legal = {(a, b) for a, targets in TRANSITIONS.items() for b in targets}
    assert legal == LEGAL


@pytest.mark.parametrize(("from_status", "to_status"), sorted(LEGAL))
def test_legal_transitions(build_booking, now, from_status, to_status):
    booking = build_booking(status=from_status, updated_at=now - timedelta(hours=1))

    moved = ApprovalDecider().transition(booking, to_status, now=now)

    assert moved.status == to_status
    assert moved.updated_at == now
    assert booking.status == from_status


@pytest.mark.parametrize(("from_status", "to_status"), ILLEGAL)
def test_illegal_transitions_fail(build_booking, now, from_status, to_status):
    booking = build_booking(status=from_status, updated_at=now)

    with pytest.raises(InvalidTransitionError) as exc_info:
        ApprovalDecider().transition(booking, to_status, now=now)

    assert exc_info.value.from_status == from_status
    assert exc_info.value.to_status == to_status


def test_declined_booking_cannot_be_approved(build_booking, now):
    booking = build_booking(status="declined", updated_at=now)

    with pytest.raises(InvalidTransitionError):
        ApprovalDecider().transition(booking, "approved", now=now)


def test_stale_status_reports_concurrent_modification(build_booking, now):
    booking = build_booking(status="approved", updated_at=now)

    with pytest.raises(ConcurrentModificationError) as exc_info:
        ApprovalDecider().transition(booking, "declined", expected_status="pending", now=now)

    assert exc_info.value.expected == "pending"
    assert exc_info.value.actual == "approved"


def test_stale_updated_at_reports_concurrent_modification(build_booking, now):
    booking = build_booking(status="pending", updated_at=now)

    with pytest.raises(ConcurrentModificationError):
        ApprovalDecider().transition(
            booking,
            "approved",
            expected_status="pending",
            expected_updated_at=now - timedelta(minutes=5),
            now=now + timedelta(minutes=1),
        )


def test_manager_notes_are_appended(build_booking, now):
    decider = ApprovalDecider()
    booking = build_booking(status="pending", updated_at=now, manager_notes="Called agent")

    approved = decider.transition(booking, "approved", notes="Fits Tuesday route", now=now)
    completed = decider.transition(approved, "completed", now=now)

    assert approved.manager_notes == "Called agent\nFits Tuesday route"
    assert completed.manager_notes == approved.manager_notes


def test_updated_at_always_moves_forward(build_booking, now):
    later = now + timedelta(minutes=10)
    booking = build_booking(status="pending", updated_at=later)

    moved = ApprovalDecider().transition(booking, "approved", now=now)

    assert moved.updated_at > later
    assert stamp(later, now) == later + timedelta(microseconds=1)
    assert stamp(now, now) > now
    assert stamp(None, now) == now
    assert stamp(now - timedelta(seconds=1), now) == now
