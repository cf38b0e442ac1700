from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from booking_engine.features.booking_decisions.domain.models import AGENT_TIERS, PROPERTY_VALUE_TIERS

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # =================================================================
    # APPROVAL THRESHOLDS - shared by the scorer and the decider
    # =================================================================
    AUTO_APPROVAL_THRESHOLD: int = 80
    MANAGER_REVIEW_THRESHOLD: int = 60

    # =================================================================
    # PRIORITY SCORING - category caps (must sum to at most 100)
    # =================================================================
    PROPERTY_VALUE_MAX: int = 30
    COMPLEXITY_MAX: int = 25
    AGENT_TIER_MAX: int = 20
    FLEXIBILITY_MAX: int = 10
    LEAD_TIME_MAX: int = 15

    PROPERTY_VALUE_POINTS: dict[str, int] = {
        "under_500k": 6,
        "500k_1m": 12,
        "1m_2m": 24,
        "over_2m": 30,
    }
    COMPLEXITY_POINTS: dict[str, int] = {
        "quick": 25,
        "standard": 15,
        "complex": 5,
    }
    URGENT_COMPLEXITY_POINTS: int = 20
    AGENT_TIER_POINTS: dict[str, int] = {
        "standard": 7,
        "premium": 13,
        "elite": 20,
    }
    LEAD_TIME_PLATEAU_DAYS: int = 14

    # Monthly quota gate on submission
    ENFORCE_MONTHLY_QUOTA: bool = True

    # Shoot length per complexity, in minutes
    SHOOT_DURATION_MINUTES: dict[str, int] = {
        "quick": 45,
        "standard": 90,
        "complex": 180,
    }

    # =================================================================
    # ROUTING
    # =================================================================
    TWO_OPT_MAX_ITERATIONS: int = 1000
    URBAN_MINUTES_PER_MILE: float = 60 / 35  # 35 mph average city driving
    CLUSTER_THRESHOLD_MILES: float = 5.0
    DAY_START_TIME: str = "08:00"

    # =================================================================
    # REMINDERS
    # =================================================================
    REMINDER_OFFSETS_MINUTES: list[int] = [7 * 24 * 60, 2 * 24 * 60, 24 * 60, 2 * 60]
    DEFAULT_SHOOT_START: str = "08:00"

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> "Settings":
        if not 0 <= self.MANAGER_REVIEW_THRESHOLD < self.AUTO_APPROVAL_THRESHOLD <= 100:
            raise ValueError(
                "Thresholds must satisfy 0 <= MANAGER_REVIEW_THRESHOLD "
                "< AUTO_APPROVAL_THRESHOLD <= 100"
            )

        caps = self.category_caps()
        if any(cap < 0 for cap in caps.values()):
            raise ValueError("Category caps must be non-negative")
        if sum(caps.values()) > 100:
            raise ValueError(f"Category caps sum to {sum(caps.values())}, above 100")

        for name, points, cap in (
            ("PROPERTY_VALUE_POINTS", self.PROPERTY_VALUE_POINTS, self.PROPERTY_VALUE_MAX),
            ("COMPLEXITY_POINTS", self.COMPLEXITY_POINTS, self.COMPLEXITY_MAX),
            ("AGENT_TIER_POINTS", self.AGENT_TIER_POINTS, self.AGENT_TIER_MAX),
        ):
            for key, value in points.items():
                if not 0 <= value <= cap:
                    raise ValueError(f"{name}[{key}]={value} outside 0..{cap}")

        property_points = [self.PROPERTY_VALUE_POINTS.get(tier) for tier in PROPERTY_VALUE_TIERS]
        if None in property_points:
            raise ValueError("PROPERTY_VALUE_POINTS must cover every property value tier")
        if any(low > high for low, high in zip(property_points, property_points[1:])):
            raise ValueError("PROPERTY_VALUE_POINTS must not decrease as the property value tier rises")

        tier_points = [self.AGENT_TIER_POINTS.get(tier) for tier in AGENT_TIERS]
        if None in tier_points:
            raise ValueError("AGENT_TIER_POINTS must cover every agent tier")
        if any(low >= high for low, high in zip(tier_points, tier_points[1:])):
            raise ValueError("AGENT_TIER_POINTS must rank elite > premium > standard")

        if not 0 <= self.URGENT_COMPLEXITY_POINTS <= self.COMPLEXITY_MAX:
            raise ValueError("URGENT_COMPLEXITY_POINTS exceeds COMPLEXITY_MAX")
        if self.LEAD_TIME_PLATEAU_DAYS <= 0:
            raise ValueError("LEAD_TIME_PLATEAU_DAYS must be positive")
        if self.TWO_OPT_MAX_ITERATIONS < 0:
            raise ValueError("TWO_OPT_MAX_ITERATIONS must be non-negative")
        if self.URBAN_MINUTES_PER_MILE <= 0:
            raise ValueError("URBAN_MINUTES_PER_MILE must be positive")
        if any(offset <= 0 for offset in self.REMINDER_OFFSETS_MINUTES):
            raise ValueError("REMINDER_OFFSETS_MINUTES must all be positive")
        if len(set(self.REMINDER_OFFSETS_MINUTES)) != len(self.REMINDER_OFFSETS_MINUTES):
            raise ValueError("REMINDER_OFFSETS_MINUTES must not repeat")
        return self

    def category_caps(self) -> dict[str, int]:
        """Caps keyed by category, in breakdown order."""
        return {
            "Property Value": self.PROPERTY_VALUE_MAX,
            "Shoot Complexity": self.COMPLEXITY_MAX,
            "Agent Tier": self.AGENT_TIER_MAX,
            "Flexibility": self.FLEXIBILITY_MAX,
            "Lead Time": self.LEAD_TIME_MAX,
        }


settings = Settings()

# =================================================================
# QUICK CONFIGURATION REFERENCE
# =================================================================
"""
Every value above can be overridden from the environment or .env.local:

STRICTER TRIAGE:
    AUTO_APPROVAL_THRESHOLD=90
    MANAGER_REVIEW_THRESHOLD=70

REWEIGHTING (JSON for the point maps):
    PROPERTY_VALUE_POINTS='{"under_500k": 5, "500k_1m": 10, "1m_2m": 20, "over_2m": 30}'

REMINDERS (minutes before the shoot):
    REMINDER_OFFSETS_MINUTES='[1440, 120]'

"""
