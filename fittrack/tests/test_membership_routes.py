from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import BackgroundTasks, HTTPException, Response

from fittrack import app_context
from fittrack.app.entitlements import EntitlementResolver, Tier
from fittrack.app.feature_gates import FeatureGate, FeatureGateError
from fittrack.app.fitness import FitnessService, InMemoryFitnessRepository
from fittrack.app.memberships import (
    InMemoryMembershipRepository,
    KeyIssuanceService,
    KeyRedemptionEngine,
    MembershipKeyDraft,
)
from fittrack.app.routes import admin as admin_routes
from fittrack.app.routes import fitness as fitness_routes
from fittrack.app.routes import integrations as integration_routes
from fittrack.app.routes import memberships as membership_routes
from fittrack.app.schemas.fitness import GoalCreateRequest, GoalProgressRequest, WorkoutCreateRequest
from fittrack.app.schemas.memberships import GenerateKeysRequest, RedeemKeyRequest, UpgradeRequest


class SilentNotifier:
    def notify(self, event) -> bool:
        return True


@pytest.fixture
def memberships() -> InMemoryMembershipRepository:
    return InMemoryMembershipRepository()


@pytest.fixture
def resolver(memberships) -> EntitlementResolver:
    return EntitlementResolver(memberships)


@pytest.fixture
def fitness(memberships, resolver) -> FitnessService:
    repository = InMemoryFitnessRepository()
    return FitnessService(repository, FeatureGate(resolver, repository))


@pytest.fixture(autouse=True)
def wire_services(monkeypatch, memberships, resolver, fitness):
    engine = KeyRedemptionEngine(repository=memberships, notifier=SilentNotifier(), invalidator=resolver)
    issuance = KeyIssuanceService(repository=memberships, notifier=SilentNotifier())
    monkeypatch.setattr(membership_routes, "get_redemption_engine", lambda: engine)
    monkeypatch.setattr(membership_routes, "get_entitlement_resolver", lambda: resolver)
    monkeypatch.setattr(admin_routes, "get_issuance_service", lambda: issuance)
    monkeypatch.setattr(admin_routes, "get_fitness_service", lambda: fitness)
    monkeypatch.setattr(fitness_routes, "get_fitness_service", lambda: fitness)
    monkeypatch.setattr(integration_routes, "get_fitness_service", lambda: fitness)


def _issue(memberships, code: str, tier: Tier = Tier.PRO, days: int = 90) -> None:
    memberships.insert_keys([MembershipKeyDraft(key=code, tier=tier, duration_days=days)])


def test_read_membership_defaults_to_free():
    response = membership_routes.read_membership(current_user=SimpleNamespace(id=1))

    assert response.tier == Tier.FREE
    assert response.membership is None
    assert response.remaining_days == 0
    assert response.details.feature_flags["workouts.weekly_limit"] == 5


def test_list_tiers_returns_catalog_in_order():
    response = membership_routes.list_tiers()

    assert [tier.key for tier in response.tiers] == [Tier.FREE, Tier.PREMIUM, Tier.PRO, Tier.ELITE]


def test_redeem_applies_key_and_hides_full_code(memberships):
    _issue(memberships, "PRO-deadbeef")
    http_response = Response()

    result = membership_routes.redeem_key(
        RedeemKeyRequest(key="PRO-deadbeef"),
        http_response,
        BackgroundTasks(),
        current_user=SimpleNamespace(id=1),
    )

    assert http_response.status_code == 200
    assert result.status == "applied"
    assert result.key == "PRO-...beef"
    assert result.membership.tier == Tier.PRO

    status = membership_routes.read_membership(current_user=SimpleNamespace(id=1))
    assert status.tier == Tier.PRO
    assert status.remaining_days == 90


def test_redeem_queues_notification_as_background_task(monkeypatch, memberships, resolver):
    events = []
    notifier = SimpleNamespace(notify=lambda event: events.append(event) or True)
    engine = KeyRedemptionEngine(repository=memberships, notifier=notifier, invalidator=resolver)
    monkeypatch.setattr(membership_routes, "get_redemption_engine", lambda: engine)
    _issue(memberships, "PRO-bgtask01")
    background_tasks = BackgroundTasks()

    result = membership_routes.redeem_key(
        RedeemKeyRequest(key="PRO-bgtask01"),
        Response(),
        background_tasks,
        current_user=SimpleNamespace(id=1),
    )

    assert result.status == "applied"
    assert events == []
    [task] = background_tasks.tasks
    task.func(*task.args, **task.kwargs)
    assert len(events) == 1


@pytest.mark.parametrize(
    "prepare,code,expected_status,reason",
    [
        (lambda repo: None, "PRO-missing0", 404, "key_not_found"),
        (lambda repo: repo.set_key_revoked(1), "PRO-deadbeef", 410, "key_revoked"),
        (
            lambda repo: repo.apply_key("PRO-deadbeef", 99, Tier.PRO, datetime.now(timezone.utc) + timedelta(days=90)),
            "PRO-deadbeef",
            409,
            "key_already_used",
        ),
    ],
)
def test_redeem_rejections_map_to_status_codes(memberships, prepare, code, expected_status, reason):
    _issue(memberships, "PRO-deadbeef")
    prepare(memberships)
    http_response = Response()

    result = membership_routes.redeem_key(
        RedeemKeyRequest(key=code),
        http_response,
        BackgroundTasks(),
        current_user=SimpleNamespace(id=1),
    )

    assert http_response.status_code == expected_status
    assert result.status == "rejected"
    assert result.reason.value == reason


def test_redeem_with_active_subscription_returns_info(memberships):
    memberships.supersede_membership(1, Tier.PREMIUM, datetime.now(timezone.utc) + timedelta(days=45), None)
    _issue(memberships, "ELI-cafebabe", Tier.ELITE, 30)
    http_response = Response()

    result = membership_routes.redeem_key(
        RedeemKeyRequest(key="ELI-cafebabe"),
        http_response,
        BackgroundTasks(),
        current_user=SimpleNamespace(id=1),
    )

    assert http_response.status_code == 200
    assert result.status == "info_only"
    assert result.current_tier == Tier.PREMIUM
    assert result.time_remaining == "1 month"
    assert result.is_upgrade is True
    assert result.bypassable is True


def test_upgrade_with_wrong_tier_is_bad_request(memberships):
    _issue(memberships, "PRE-12345678", Tier.PREMIUM, 30)
    http_response = Response()

    result = membership_routes.upgrade_membership(
        UpgradeRequest(tier=Tier.ELITE, membership_key="PRE-12345678"),
        http_response,
        BackgroundTasks(),
        current_user=SimpleNamespace(id=1),
    )

    assert http_response.status_code == 400
    assert result.reason.value == "tier_mismatch"


def test_admin_generate_and_revoke_keys():
    admin = SimpleNamespace(id=1, username="Owner", role="admin")

    keys = admin_routes.generate_membership_keys(
        GenerateKeysRequest(tier=Tier.ELITE, duration=365, count=2),
        BackgroundTasks(),
        current_user=admin,
    )

    assert len(keys) == 2
    assert all(key.key.startswith("ELI-") for key in keys)
    assert len(admin_routes.list_membership_keys(current_user=admin)) == 2

    revoked = admin_routes.revoke_membership_key(keys[0].id, current_user=admin)
    assert revoked.message == "Membership key revoked successfully"


def test_admin_generate_rejects_unsupported_duration():
    admin = SimpleNamespace(id=1, username="Owner", role="admin")

    with pytest.raises(HTTPException) as exc:
        admin_routes.generate_membership_keys(
            GenerateKeysRequest(tier=Tier.PRO, duration=7, count=1),
            BackgroundTasks(),
            current_user=admin,
        )

    assert exc.value.status_code == 400


def test_admin_revoke_unknown_key_is_not_found():
    with pytest.raises(HTTPException) as exc:
        admin_routes.revoke_membership_key(404, current_user=SimpleNamespace(id=1, role="admin"))

    assert exc.value.status_code == 404


def test_admin_lists_users_from_user_store(monkeypatch):
    store = SimpleNamespace(
        list_users=lambda: [
            {"id": 1, "username": "Owner", "email": None, "display_name": "Administrator", "role": "admin", "created_at": None},
            {"id": 2, "username": "casey", "email": "casey@example.com", "display_name": None, "role": "user", "created_at": None},
        ]
    )
    monkeypatch.setattr(app_context, "get_user_store", lambda: store)

    users = admin_routes.list_users(current_user=SimpleNamespace(id=1, role="admin"))

    assert [user.username for user in users] == ["Owner", "casey"]


def test_workout_route_surfaces_gate_denial():
    user = SimpleNamespace(id=5)
    payload = WorkoutCreateRequest(workout_type="cardio", exercise="Run", duration=20, intensity="low")
    for _ in range(5):
        fitness_routes.create_workout(payload, current_user=user)

    with pytest.raises(FeatureGateError) as exc:
        fitness_routes.create_workout(payload, current_user=user)

    assert exc.value.status_code == 403
    assert len(fitness_routes.list_workouts(current_user=user)) == 5
    assert len(fitness_routes.list_recent_workouts(limit=3, current_user=user)) == 3


def test_goal_progress_for_foreign_goal_is_not_found():
    goal = fitness_routes.create_goal(
        GoalCreateRequest(title="Run 10k", target=10, unit="km"),
        current_user=SimpleNamespace(id=1),
    )

    with pytest.raises(HTTPException) as exc:
        fitness_routes.update_goal_progress(
            goal.id, GoalProgressRequest(progress=5), current_user=SimpleNamespace(id=2)
        )

    assert exc.value.status_code == 404


def test_pf_check_in_without_integration_is_not_found():
    with pytest.raises(HTTPException) as exc:
        integration_routes.check_in(current_user=SimpleNamespace(id=1))

    assert exc.value.status_code == 404
    assert integration_routes.read_pf_integration(current_user=SimpleNamespace(id=1)).connected is False


def test_admin_activity_logs_span_users():
    fitness_routes.create_goal(GoalCreateRequest(title="A", target=1, unit="x"), current_user=SimpleNamespace(id=1))
    fitness_routes.create_goal(GoalCreateRequest(title="B", target=1, unit="x"), current_user=SimpleNamespace(id=2))

    entries = admin_routes.list_activity_logs(limit=10, current_user=SimpleNamespace(id=1, role="admin"))

    assert {entry.user_id for entry in entries} == {1, 2}
