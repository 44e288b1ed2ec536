"""Domain models for membership tiers and entitlement resolution."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Tier(str, Enum):
    """Canonical membership tiers, ordered from least to most capable."""

    FREE = "free"
    PREMIUM = "premium"
    PRO = "pro"
    ELITE = "elite"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


_TIER_RANKS: Dict[Tier, int] = {
    Tier.FREE: 0,
    Tier.PREMIUM: 1,
    Tier.PRO: 2,
    Tier.ELITE: 3,
}


def is_at_least(tier: Tier, minimum: Tier) -> bool:
    """Return whether ``tier`` meets or exceeds ``minimum``."""

    return tier.rank >= minimum.rank


@dataclass(frozen=True)
class FeatureBundle:
    """Limits and capability flags granted by a tier.

    ``None`` limits mean unlimited.
    """

    workout_log_weekly_limit: Optional[int] = 5
    exercise_library_size: int = 20
    goal_limit: Optional[int] = 1
    supports_gym_card: bool = True
    supports_gym_analytics: bool = False
    supports_fitness_sync_basic: bool = False
    supports_fitness_sync_full: bool = False
    supports_advanced_analytics: bool = False

    def to_flags(self) -> Dict[str, Optional[int] | bool]:
        """Serialize bundle to flattened flag keys."""

        return {
            "workouts.weekly_limit": self.workout_log_weekly_limit,
            "exercises.library_size": self.exercise_library_size,
            "goals.limit": self.goal_limit,
            "gym.card": self.supports_gym_card,
            "gym.analytics": self.supports_gym_analytics,
            "fitness_sync.basic": self.supports_fitness_sync_basic,
            "fitness_sync.full": self.supports_fitness_sync_full,
            "analytics.advanced": self.supports_advanced_analytics,
        }


class MembershipRecord(BaseModel):
    """A user's entitlement grant. At most one record per user is active."""

    id: int
    user_id: int
    tier: Tier
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    membership_key: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _validate_window(self) -> "MembershipRecord":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    def is_expired(self, now: datetime) -> bool:
        return self.end_date <= now


class EntitlementResolution(BaseModel):
    """Tier-derived permissions currently in force for a user."""

    user_id: int
    tier: Tier
    bundle: FeatureBundle
    active_record: Optional[MembershipRecord] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @property
    def feature_flags(self) -> Dict[str, Optional[int] | bool]:
        return self.bundle.to_flags()

    @property
    def workout_log_weekly_limit(self) -> Optional[int]:
        return self.bundle.workout_log_weekly_limit

    @property
    def goal_limit(self) -> Optional[int]:
        return self.bundle.goal_limit

    def has(self, flag: str) -> bool:
        return bool(self.feature_flags.get(flag))

    def is_at_least(self, minimum: Tier) -> bool:
        return is_at_least(self.tier, minimum)
