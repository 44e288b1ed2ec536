from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from fittrack.app.entitlements import EntitlementResolver, MembershipRecord, Tier
from fittrack.app.feature_gates import (
    FEATURE_LIMIT_REACHED,
    FEATURE_UNAVAILABLE,
    EntitlementContext,
    FeatureGate,
    FeatureGateError,
    evaluate_quota,
    fitness_sync_check,
    goal_creation_check,
    mood_insight_check,
    require_entitlement,
    workout_creation_check,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeMemberships:
    def __init__(self) -> None:
        self.records: Dict[int, MembershipRecord] = {}

    def grant(self, user_id: int, tier: Tier) -> None:
        self.records[user_id] = MembershipRecord(
            id=user_id,
            user_id=user_id,
            tier=tier,
            start_date=NOW - timedelta(days=1),
            end_date=NOW + timedelta(days=30),
        )

    def get_active_membership(self, user_id: int) -> Optional[MembershipRecord]:
        return self.records.get(user_id)


class FakeUsage:
    def __init__(self) -> None:
        self.workout_dates: List[datetime] = []
        self.active_goals = 0

    def count_workouts_since(self, user_id: int, since: datetime) -> int:
        return sum(1 for date in self.workout_dates if date >= since)

    def count_active_goals(self, user_id: int) -> int:
        return self.active_goals


@pytest.fixture
def memberships() -> FakeMemberships:
    return FakeMemberships()


@pytest.fixture
def usage() -> FakeUsage:
    return FakeUsage()


@pytest.fixture
def gate(memberships, usage) -> FeatureGate:
    return FeatureGate(EntitlementResolver(memberships, clock=lambda: NOW), usage)


def test_require_entitlement_allows_enabled_flag():
    require_entitlement({"gym.card": True}, "gym.card")


def test_require_entitlement_raises_when_missing():
    with pytest.raises(FeatureGateError) as exc:
        require_entitlement({"gym.card": True}, "fitness_sync.full")

    assert exc.value.code == FEATURE_UNAVAILABLE
    assert exc.value.payload["missing_entitlement"] == "fitness_sync.full"
    assert exc.value.payload["upgrade_required"] is True


def test_unlimited_quota_always_allows():
    evaluation = evaluate_quota(feature="goals.limit", used=10_000, limit=None)

    assert evaluation.allowed is True
    assert evaluation.remaining is None


def test_free_workouts_denied_on_sixth_within_rolling_window(gate, usage):
    usage.workout_dates = [NOW - timedelta(days=6, hours=23)] + [NOW - timedelta(hours=h) for h in range(1, 4)]
    assert gate.guard(1, workout_creation_check).allowed is True

    usage.workout_dates.append(NOW - timedelta(minutes=5))
    decision = gate.guard(1, workout_creation_check)

    assert decision.allowed is False
    assert decision.error.code == FEATURE_LIMIT_REACHED
    assert decision.error.payload["limit"] == 5


def test_free_workouts_allowed_again_once_oldest_leaves_window(memberships, usage):
    oldest = NOW - timedelta(days=6, hours=23)
    usage.workout_dates = [oldest] + [NOW - timedelta(hours=h) for h in range(1, 4)]
    gate_now = FeatureGate(EntitlementResolver(memberships, clock=lambda: NOW), usage)
    assert gate_now.guard(1, workout_creation_check).allowed is True
    usage.workout_dates.append(NOW)
    assert gate_now.guard(1, workout_creation_check).allowed is False

    later = NOW + timedelta(hours=2)
    gate_later = FeatureGate(EntitlementResolver(memberships, clock=lambda: later), usage)

    assert gate_later.guard(1, workout_creation_check).allowed is True


def test_paid_tiers_have_no_weekly_workout_limit(gate, memberships, usage):
    memberships.grant(1, Tier.PREMIUM)
    usage.workout_dates = [NOW - timedelta(hours=h) for h in range(50)]

    assert gate.guard(1, workout_creation_check).allowed is True


@pytest.mark.parametrize(
    "tier,limit",
    [(Tier.FREE, 1), (Tier.PREMIUM, 5), (Tier.PRO, 10)],
)
def test_goal_creation_denied_at_tier_limit(gate, memberships, usage, tier, limit):
    if tier != Tier.FREE:
        memberships.grant(1, tier)

    usage.active_goals = limit - 1
    assert gate.guard(1, goal_creation_check).allowed is True

    usage.active_goals = limit
    decision = gate.guard(1, goal_creation_check)
    assert decision.allowed is False
    assert decision.error.code == FEATURE_LIMIT_REACHED


def test_elite_goal_creation_never_denied(gate, memberships, usage):
    memberships.grant(1, Tier.ELITE)
    usage.active_goals = 500

    assert gate.guard(1, goal_creation_check).allowed is True


def test_fitness_sync_requires_premium(gate, memberships):
    decision = gate.guard(1, fitness_sync_check)
    assert decision.allowed is False
    assert decision.error.code == FEATURE_UNAVAILABLE
    assert decision.error.payload["required_tier"] == "premium"

    memberships.grant(1, Tier.PREMIUM)
    assert gate.guard(1, fitness_sync_check).allowed is True


def test_enforce_raises_and_returns_context(gate, memberships):
    with pytest.raises(FeatureGateError):
        gate.enforce(1, mood_insight_check)

    memberships.grant(1, Tier.PRO)
    context = gate.enforce(1, mood_insight_check)

    assert isinstance(context, EntitlementContext)
    assert context.tier == Tier.PRO


def test_feature_gate_error_converts_to_http_exception():
    error = FeatureGateError(code=FEATURE_LIMIT_REACHED, message="limit reached")
    http_exc = error.to_http_exception()

    assert http_exc.status_code == 403
    assert http_exc.detail["error"] == FEATURE_LIMIT_REACHED
    assert http_exc.detail["message"] == "limit reached"
