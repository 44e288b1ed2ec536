"""Feature gating utilities coordinating entitlement enforcement."""
from .context import EntitlementContext
from .enforcement import require_entitlement, require_tier
from .exceptions import FEATURE_LIMIT_REACHED, FEATURE_UNAVAILABLE, FeatureGateError
from .gate import (
    FeatureGate,
    GateCheck,
    GateDecision,
    GateRequest,
    UsageReader,
    fitness_sync_check,
    goal_creation_check,
    gym_card_check,
    mood_insight_check,
    workout_creation_check,
)
from .quota import QuotaEvaluation, assert_quota, evaluate_quota

__all__ = [
    "EntitlementContext",
    "FEATURE_LIMIT_REACHED",
    "FEATURE_UNAVAILABLE",
    "FeatureGate",
    "FeatureGateError",
    "GateCheck",
    "GateDecision",
    "GateRequest",
    "QuotaEvaluation",
    "UsageReader",
    "assert_quota",
    "evaluate_quota",
    "fitness_sync_check",
    "goal_creation_check",
    "gym_card_check",
    "mood_insight_check",
    "require_entitlement",
    "require_tier",
    "workout_creation_check",
]
