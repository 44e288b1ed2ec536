"""Static catalog mapping each membership tier to its feature bundle."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .models import FeatureBundle, Tier


@dataclass(frozen=True)
class TierDefinition:
    """Describes a membership tier and the entitlements it grants."""

    key: Tier
    display_name: str
    bundle: FeatureBundle
    feature_list: Tuple[str, ...] = ()


FREE_BUNDLE = FeatureBundle(
    workout_log_weekly_limit=5,
    exercise_library_size=20,
    goal_limit=1,
    supports_gym_card=True,
)

PREMIUM_BUNDLE = FeatureBundle(
    workout_log_weekly_limit=None,
    exercise_library_size=100,
    goal_limit=5,
    supports_gym_card=True,
    supports_gym_analytics=True,
    supports_fitness_sync_basic=True,
)

PRO_BUNDLE = FeatureBundle(
    workout_log_weekly_limit=None,
    exercise_library_size=200,
    goal_limit=10,
    supports_gym_card=True,
    supports_gym_analytics=True,
    supports_fitness_sync_basic=True,
    supports_fitness_sync_full=True,
    supports_advanced_analytics=True,
)

ELITE_BUNDLE = FeatureBundle(
    workout_log_weekly_limit=None,
    exercise_library_size=300,
    goal_limit=None,
    supports_gym_card=True,
    supports_gym_analytics=True,
    supports_fitness_sync_basic=True,
    supports_fitness_sync_full=True,
    supports_advanced_analytics=True,
)

TIER_CATALOG: Dict[Tier, TierDefinition] = {
    Tier.FREE: TierDefinition(
        key=Tier.FREE,
        display_name="Free",
        bundle=FREE_BUNDLE,
        feature_list=(
            "Limited to 5 workout logs per week",
            "Basic exercise library (20 exercises)",
            "Simple progress tracking",
            "Single goal tracking",
            "Basic Planet Fitness account linking",
            "Digital PF membership card",
        ),
    ),
    Tier.PREMIUM: TierDefinition(
        key=Tier.PREMIUM,
        display_name="Premium",
        bundle=PREMIUM_BUNDLE,
        feature_list=(
            "Unlimited workout logging",
            "Extended exercise library (100+ exercises)",
            "Advanced goal setting (up to 5 concurrent goals)",
            "Basic Apple Fitness data import (workouts only)",
            "Full Planet Fitness data integration",
            "AI mood insights on logged workouts",
        ),
    ),
    Tier.PRO: TierDefinition(
        key=Tier.PRO,
        display_name="Pro",
        bundle=PRO_BUNDLE,
        feature_list=(
            "All Premium features",
            "Detailed performance analytics",
            "Up to 10 concurrent goals",
            "Full Apple Fitness integration",
            "Historical Apple Fitness data import",
            "Enhanced Planet Fitness analytics",
        ),
    ),
    Tier.ELITE: TierDefinition(
        key=Tier.ELITE,
        display_name="Elite",
        bundle=ELITE_BUNDLE,
        feature_list=(
            "All Pro features",
            "Unlimited concurrent goals",
            "Advanced performance metrics",
            "Advanced Apple Fitness integration",
            "Premium Planet Fitness insights",
            "Priority support",
        ),
    ),
}


def get_tier_definition(tier: Tier) -> TierDefinition:
    """Return a tier definition, raising if unsupported."""

    try:
        return TIER_CATALOG[tier]
    except KeyError as exc:  # pragma: no cover - guarded by static catalog
        raise KeyError(f"Unknown tier: {tier}") from exc
