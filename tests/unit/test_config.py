import pytest
from pydantic import ValidationError

from booking_engine.config import Settings


def test_defaults_are_consistent():
    config = Settings()

    assert config.AUTO_APPROVAL_THRESHOLD == 80
    assert config.MANAGER_REVIEW_THRESHOLD == 60
    assert sum(config.category_caps().values()) == 100
    assert list(config.category_caps()) == [
        "Property Value",
        "Shoot Complexity",
        "Agent Tier",
        "Flexibility",
        "Lead Time",
    ]


def test_environment_overrides_thresholds(monkeypatch):
    monkeypatch.setenv("AUTO_APPROVAL_THRESHOLD", "90")
    monkeypatch.setenv("MANAGER_REVIEW_THRESHOLD", "70")

    config = Settings()

    assert config.AUTO_APPROVAL_THRESHOLD == 90
    assert config.MANAGER_REVIEW_THRESHOLD == 70


@pytest.mark.parametrize(
    "overrides",
    [
        {"AUTO_APPROVAL_THRESHOLD": 50, "MANAGER_REVIEW_THRESHOLD": 60},
        {"AUTO_APPROVAL_THRESHOLD": 60, "MANAGER_REVIEW_THRESHOLD": 60},
        {"AUTO_APPROVAL_THRESHOLD": 120},
        {"PROPERTY_VALUE_MAX": 50},
        {"PROPERTY_VALUE_MAX": 20},
        {"LEAD_TIME_MAX": -1},
        {"URGENT_COMPLEXITY_POINTS": 40},
        {"LEAD_TIME_PLATEAU_DAYS": 0},
        {"TWO_OPT_MAX_ITERATIONS": -5},
        {"URBAN_MINUTES_PER_MILE": 0},
        {"REMINDER_OFFSETS_MINUTES": [120, 0]},
        {"REMINDER_OFFSETS_MINUTES": [120, 120]},
        {"PROPERTY_VALUE_POINTS": {"under_500k": 30, "500k_1m": 6, "1m_2m": 24, "over_2m": 30}},
        {"PROPERTY_VALUE_POINTS": {"under_500k": 6, "500k_1m": 12, "over_2m": 30}},
        {"AGENT_TIER_POINTS": {"standard": 13, "premium": 13, "elite": 20}},
        {"AGENT_TIER_POINTS": {"standard": 20, "premium": 13, "elite": 7}},
    ],
)
def test_inconsistent_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)
