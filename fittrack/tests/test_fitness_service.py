from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from fittrack.app.entitlements import EntitlementResolver, Tier
from fittrack.app.feature_gates import FEATURE_LIMIT_REACHED, FEATURE_UNAVAILABLE, FeatureGate, FeatureGateError
from fittrack.app.fitness import (
    FitnessService,
    GoalDraft,
    InMemoryFitnessRepository,
    Intensity,
    PlanetFitnessLink,
    WorkoutDraft,
    estimate_calories,
    simulate_fitness_sync,
)
from fittrack.app.memberships import InMemoryMembershipRepository

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeInsights:
    def __init__(self, text: str = "Keep riding that energy.") -> None:
        self.text = text
        self.calls = 0

    def analyze(self, workout) -> str:
        self.calls += 1
        return self.text


class FailingInsights:
    def analyze(self, workout) -> str:
        raise RuntimeError("model unavailable")


@pytest.fixture
def memberships() -> InMemoryMembershipRepository:
    return InMemoryMembershipRepository(clock=lambda: NOW)


@pytest.fixture
def repository() -> InMemoryFitnessRepository:
    return InMemoryFitnessRepository(clock=lambda: NOW)


@pytest.fixture
def insights() -> FakeInsights:
    return FakeInsights()


@pytest.fixture
def service(memberships, repository, insights) -> FitnessService:
    gate = FeatureGate(EntitlementResolver(memberships, clock=lambda: NOW), repository)
    return FitnessService(repository, gate, insights=insights, rng=random.Random(7))


def _grant(memberships, user_id: int, tier: Tier) -> None:
    memberships.supersede_membership(user_id, tier, NOW + timedelta(days=30), None)


def _workout(**overrides) -> WorkoutDraft:
    fields = dict(workout_type="strength", exercise="Squat", duration=45, intensity=Intensity.MEDIUM)
    fields.update(overrides)
    return WorkoutDraft(**fields)


@pytest.mark.parametrize("intensity,expected", [(Intensity.LOW, 150), (Intensity.MEDIUM, 210), (Intensity.HIGH, 300)])
def test_estimate_calories(intensity, expected):
    assert estimate_calories(30, intensity) == expected


def test_create_workout_records_calories_and_activity(service, repository):
    workout = service.create_workout(1, _workout())

    assert workout.calories_burned == 315
    assert workout.date == NOW
    [entry] = repository.list_activity_logs(1)
    assert entry.activity_type == "workout"
    assert "Squat" in entry.description


def test_free_user_cannot_log_sixth_workout_in_a_week(service):
    for day in range(5):
        service.create_workout(1, _workout(date=NOW - timedelta(days=day)))

    with pytest.raises(FeatureGateError) as exc:
        service.create_workout(1, _workout())

    assert exc.value.code == FEATURE_LIMIT_REACHED
    assert len(service.list_workouts(1)) == 5


def test_mood_insight_only_for_premium_and_above(service, memberships, insights):
    free_workout = service.create_workout(1, _workout(mood="tired"))
    assert free_workout.ai_insights is None
    assert insights.calls == 0

    _grant(memberships, 2, Tier.PREMIUM)
    premium_workout = service.create_workout(2, _workout(mood="great"))

    assert premium_workout.ai_insights == "Keep riding that energy."
    assert insights.calls == 1


def test_insight_failure_does_not_block_workout(memberships, repository):
    gate = FeatureGate(EntitlementResolver(memberships, clock=lambda: NOW), repository)
    service = FitnessService(repository, gate, insights=FailingInsights())
    _grant(memberships, 3, Tier.ELITE)

    workout = service.create_workout(3, _workout(mood="sore"))

    assert workout.ai_insights is None


def test_free_user_goal_limit(service):
    service.create_goal(1, GoalDraft(title="Run 50k", target=50, unit="km"))

    with pytest.raises(FeatureGateError):
        service.create_goal(1, GoalDraft(title="Lift more", target=10, unit="sessions"))


def test_completed_goal_frees_a_slot_and_logs_once(service, repository):
    goal = service.create_goal(1, GoalDraft(title="Run 50k", target=50, unit="km"))

    partial = service.update_goal_progress(1, goal.id, 20)
    assert partial.is_completed is False

    done = service.update_goal_progress(1, goal.id, 50)
    service.update_goal_progress(1, goal.id, 55)

    assert done.is_completed is True
    completions = [e for e in repository.list_activity_logs(1) if e.description.startswith("Completed goal")]
    assert len(completions) == 1
    service.create_goal(1, GoalDraft(title="Swim 5k", target=5, unit="km"))


def test_goal_progress_requires_ownership(service):
    goal = service.create_goal(1, GoalDraft(title="Run 50k", target=50, unit="km"))

    assert service.update_goal_progress(2, goal.id, 10) is None
    assert service.update_goal_progress(1, 999, 10) is None
    with pytest.raises(ValueError):
        service.update_goal_progress(1, goal.id, -1)


def test_pf_check_in_requires_connection(service, repository):
    assert service.pf_check_in(1) is None

    service.connect_pf(1, PlanetFitnessLink(pf_member_number="123", pf_home_gym="Downtown"))
    integration = service.pf_check_in(1)

    assert integration.last_check_in == NOW
    assert repository.list_activity_logs(1)[0].description == "Checked in at Downtown"


def test_apple_sync_requires_premium(service):
    with pytest.raises(FeatureGateError) as exc:
        service.connect_apple(1)

    assert exc.value.code == FEATURE_UNAVAILABLE
    with pytest.raises(FeatureGateError):
        service.get_apple_integration(1)


def test_apple_sync_history_depends_on_tier(service, memberships):
    _grant(memberships, 2, Tier.PREMIUM)
    _grant(memberships, 3, Tier.PRO)

    basic = service.connect_apple(2)
    full = service.connect_apple(3)

    assert basic.is_connected is True
    assert basic.sync_data["fullSync"] is False
    assert "history" not in basic.sync_data
    assert full.sync_data["fullSync"] is True
    assert len(full.sync_data["history"]) == 7


def test_disconnect_apple_keeps_last_snapshot(service, memberships):
    _grant(memberships, 2, Tier.PREMIUM)
    service.connect_apple(2)

    disconnected = service.connect_apple(2, is_connected=False)

    assert disconnected.is_connected is False
    assert disconnected.sync_data is not None


def test_simulated_sync_is_deterministic_with_seeded_rng():
    first = simulate_fitness_sync(NOW, full_history=True, rng=random.Random(1))
    second = simulate_fitness_sync(NOW, full_history=True, rng=random.Random(1))

    assert first == second
    assert first["history"][0]["date"] == "2024-06-14"
    assert 2000 <= first["today"]["steps"] <= 15000


def test_activity_listing_spans_users_when_unscoped(service):
    service.create_workout(1, _workout())
    service.create_workout(2, _workout(exercise="Bench"))

    assert len(service.list_activity()) == 2
    assert len(service.list_activity(1)) == 1
