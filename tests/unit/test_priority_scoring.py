from datetime import timedelta

import pytest

from booking_engine.config import Settings
from booking_engine.features.booking_decisions.domain.errors import ValidationError
from booking_engine.features.booking_decisions.domain.models import Agent
from booking_engine.features.booking_decisions.pipeline.scoring import PriorityScorer

CATEGORIES = ["Property Value", "Shoot Complexity", "Agent Tier", "Flexibility", "Lead Time"]


def _points(result, category):
    return next(c.points for c in result.breakdown if c.category == category)


def test_premium_flexible_request_lands_above_auto_approval(build_booking, agents, now, config):
    scorer = PriorityScorer(config)
    booking = build_booking(
        property_value_tier="over_2m",
        shoot_complexity="quick",
        is_flexible=True,
        preferred_date=now.date() + timedelta(days=20),
    )

    result = scorer.score(booking, agents["agent-elite"], now=now)

    assert result.score >= config.AUTO_APPROVAL_THRESHOLD
    assert result.score == 100


def test_breakdown_has_fixed_order_and_respects_caps(build_booking, agents, now, config):
    scorer = PriorityScorer(config)
    result = scorer.score(
        build_booking(property_value_tier="500k_1m", shoot_complexity="complex"),
        agents["agent-standard"],
        now=now,
    )

    assert [c.category for c in result.breakdown] == CATEGORIES
    assert [c.max for c in result.breakdown] == list(config.category_caps().values())
    for component in result.breakdown:
        assert 0 <= component.points <= component.max
    assert result.score == sum(c.points for c in result.breakdown)


def test_scores_stay_in_range_across_tiers(build_booking, agents, now):
    scorer = PriorityScorer()
    for tier in ("under_500k", "500k_1m", "1m_2m", "over_2m"):
        for complexity in ("quick", "standard", "complex"):
            for agent in agents.values():
                for flexible in (True, False):
                    booking = build_booking(
                        property_value_tier=tier,
                        shoot_complexity=complexity,
                        is_flexible=flexible,
                        preferred_date=now.date() - timedelta(days=3),
                    )
                    assert 0 <= scorer.score(booking, agent, now=now).score <= 100


def test_scoring_is_deterministic(build_booking, agents, now):
    scorer = PriorityScorer()
    booking = build_booking(property_value_tier="1m_2m", shoot_complexity="standard")

    first = scorer.score(booking, agents["agent-premium"], now=now)
    second = scorer.score(booking, agents["agent-premium"], now=now)

    assert first == second


def test_higher_property_value_never_scores_lower(build_booking, agents, now):
    scorer = PriorityScorer()
    scores = [
        scorer.score(build_booking(property_value_tier=tier), agents["agent-standard"], now=now).score
        for tier in ("under_500k", "500k_1m", "1m_2m", "over_2m")
    ]

    assert scores == sorted(scores)
    assert scores[0] < scores[-1]


def test_higher_agent_tier_never_scores_lower(build_booking, agents, now):
    scorer = PriorityScorer()
    booking = build_booking(property_value_tier="under_500k", shoot_complexity="complex")
    scores = [
        scorer.score(booking, Agent(id="a", tier=tier), now=now).score
        for tier in ("standard", "premium", "elite")
    ]

    assert scores == sorted(scores)


def test_agent_performance_data_does_not_move_the_score(build_booking, now):
    scorer = PriorityScorer()
    booking = build_booking()

    weak = Agent.model_validate({"id": "a", "tier": "premium", "performance_score": 10})
    strong = Agent.model_validate({"id": "a", "tier": "premium", "performance_score": 95})

    assert not hasattr(strong, "performance_score")
    assert scorer.score(booking, weak, now=now) == scorer.score(booking, strong, now=now)


def test_flexibility_adds_points(build_booking, agents, now, config):
    scorer = PriorityScorer(config)
    rigid = scorer.score(build_booking(is_flexible=False), agents["agent-premium"], now=now)
    flexible = scorer.score(build_booking(is_flexible=True), agents["agent-premium"], now=now)

    assert _points(rigid, "Flexibility") == 0
    assert _points(flexible, "Flexibility") == config.FLEXIBILITY_MAX


@pytest.mark.parametrize(
    ("days", "expected"),
    [(-2, 0), (0, 0), (1, 1), (7, 7), (13, 13), (14, 15), (45, 15)],
)
def test_lead_time_grows_then_plateaus(build_booking, agents, now, days, expected):
    scorer = PriorityScorer()
    booking = build_booking(preferred_date=now.date() + timedelta(days=days))

    result = scorer.score(booking, agents["agent-elite"], now=now)

    assert _points(result, "Lead Time") == expected


def test_urgent_flag_raises_complex_shoot_floor(build_booking, agents, now, config):
    scorer = PriorityScorer(config)
    normal = scorer.score(build_booking(shoot_complexity="complex"), agents["agent-elite"], now=now)
    urgent = scorer.score(
        build_booking(shoot_complexity="complex", is_urgent=True), agents["agent-elite"], now=now
    )

    assert _points(normal, "Shoot Complexity") == config.COMPLEXITY_POINTS["complex"]
    assert _points(urgent, "Shoot Complexity") == config.URGENT_COMPLEXITY_POINTS


def test_urgent_flag_never_lowers_quick_shoot(build_booking, agents, now, config):
    scorer = PriorityScorer(config)
    urgent = scorer.score(
        build_booking(shoot_complexity="quick", is_urgent=True), agents["agent-elite"], now=now
    )

    assert _points(urgent, "Shoot Complexity") == config.COMPLEXITY_POINTS["quick"]


@pytest.mark.parametrize("field", ["property_value_tier", "shoot_complexity", "preferred_date"])
def test_missing_required_input_names_the_field(build_booking, agents, now, field):
    scorer = PriorityScorer()
    booking = build_booking(**{field: None})

    with pytest.raises(ValidationError) as exc_info:
        scorer.score(booking, agents["agent-elite"], now=now)

    assert exc_info.value.field == field
    assert exc_info.value.booking_id == "bk-1"


def test_unknown_property_tier_is_rejected(build_booking, agents, now):
    with pytest.raises(ValidationError) as exc_info:
        PriorityScorer().score(build_booking(property_value_tier="castle"), agents["agent-elite"], now=now)

    assert exc_info.value.field == "property_value_tier"


def test_unknown_agent_tier_is_rejected(build_booking, now):
    with pytest.raises(ValidationError) as exc_info:
        PriorityScorer().score(build_booking(), Agent(id="a", tier="platinum"), now=now)

    assert exc_info.value.field == "agent.tier"


def test_custom_weights_flow_through(build_booking, agents, now):
    config = Settings(
        PROPERTY_VALUE_MAX=20,
        PROPERTY_VALUE_POINTS={"under_500k": 5, "500k_1m": 10, "1m_2m": 15, "over_2m": 20},
    )
    result = PriorityScorer(config).score(build_booking(), agents["agent-elite"], now=now)

    assert _points(result, "Property Value") == 20
    assert result.breakdown[0].max == 20
    assert result.score == 90
