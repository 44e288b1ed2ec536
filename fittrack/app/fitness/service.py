"""Workout, goal and gym integration operations behind the feature gate."""
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from ..entitlements import Tier
from ..feature_gates import (
    FeatureGate,
    fitness_sync_check,
    goal_creation_check,
    gym_card_check,
    mood_insight_check,
    workout_creation_check,
)
from .models import (
    ActivityLog,
    ActivityType,
    AppleFitnessIntegration,
    Goal,
    GoalDraft,
    PlanetFitnessIntegration,
    PlanetFitnessLink,
    Workout,
    WorkoutDraft,
    estimate_calories,
)

if TYPE_CHECKING:
    from ..insights import MoodInsightGenerator

logger = logging.getLogger("fitness")

FULL_SYNC_HISTORY_DAYS = 7


class FitnessRepository(Protocol):
    def list_workouts(self, user_id: int) -> List[Workout]:
        ...

    def list_recent_workouts(self, user_id: int, limit: int) -> List[Workout]:
        ...

    def count_workouts_since(self, user_id: int, since: datetime) -> int:
        ...

    def create_workout(
        self,
        user_id: int,
        draft: WorkoutDraft,
        *,
        date: datetime,
        calories_burned: int,
        ai_insights: Optional[str],
    ) -> Workout:
        ...

    def list_goals(self, user_id: int) -> List[Goal]:
        ...

    def count_active_goals(self, user_id: int) -> int:
        ...

    def create_goal(self, user_id: int, draft: GoalDraft, *, start_date: datetime) -> Goal:
        ...

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        ...

    def set_goal_progress(self, goal_id: int, progress: int, is_completed: bool) -> Optional[Goal]:
        ...

    def get_pf_integration(self, user_id: int) -> Optional[PlanetFitnessIntegration]:
        ...

    def upsert_pf_integration(self, user_id: int, link: PlanetFitnessLink) -> PlanetFitnessIntegration:
        ...

    def record_check_in(self, integration_id: int, checked_in_at: datetime) -> Optional[PlanetFitnessIntegration]:
        ...

    def get_apple_integration(self, user_id: int) -> Optional[AppleFitnessIntegration]:
        ...

    def upsert_apple_integration(
        self,
        user_id: int,
        *,
        is_connected: bool,
        sync_data: Optional[Dict[str, Any]],
        synced_at: Optional[datetime],
    ) -> AppleFitnessIntegration:
        ...

    def create_activity_log(self, user_id: int, activity_type: str, description: str) -> ActivityLog:
        ...

    def list_activity_logs(self, user_id: Optional[int] = None, limit: Optional[int] = None) -> List[ActivityLog]:
        ...


def simulate_fitness_sync(
    now: datetime,
    *,
    full_history: bool,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Produce a plausible sync snapshot; full sync adds a daily history."""

    rng = rng or random.Random()

    def _day() -> Dict[str, int]:
        return {
            "steps": rng.randint(2000, 15000),
            "activeCalories": rng.randint(150, 900),
            "exerciseMinutes": rng.randint(0, 90),
            "standHours": rng.randint(4, 14),
        }

    snapshot: Dict[str, Any] = {"syncedAt": now.isoformat(), "today": _day(), "fullSync": full_history}
    if full_history:
        snapshot["history"] = [
            {"date": (now - timedelta(days=offset)).date().isoformat(), **_day()}
            for offset in range(1, FULL_SYNC_HISTORY_DAYS + 1)
        ]
    return snapshot


class FitnessService:
    """Coordinates workout logging, goals and gym integrations for a user."""

    def __init__(
        self,
        repository: FitnessRepository,
        gate: FeatureGate,
        *,
        insights: Optional[MoodInsightGenerator] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.repository = repository
        self.gate = gate
        self.insights = insights
        self._rng = rng or random.Random()

    # Workouts -----------------------------------------------------------------

    def list_workouts(self, user_id: int) -> List[Workout]:
        return self.repository.list_workouts(user_id)

    def recent_workouts(self, user_id: int, limit: int = 5) -> List[Workout]:
        return self.repository.list_recent_workouts(user_id, max(limit, 1))

    def create_workout(self, user_id: int, draft: WorkoutDraft) -> Workout:
        context = self.gate.enforce(user_id, workout_creation_check)
        ai_insights = self._mood_insight(user_id, draft)
        workout = self.repository.create_workout(
            user_id,
            draft,
            date=draft.date or self._now(),
            calories_burned=estimate_calories(draft.duration, draft.intensity),
            ai_insights=ai_insights,
        )
        self.repository.create_activity_log(
            user_id,
            ActivityType.WORKOUT.value,
            f"Logged {draft.duration} min {draft.exercise} ({draft.intensity.value})",
        )
        logger.info("Workout %s logged for user=%s tier=%s", workout.id, user_id, context.tier.value)
        return workout

    def _mood_insight(self, user_id: int, draft: WorkoutDraft) -> Optional[str]:
        if self.insights is None or not draft.mood:
            return None
        if not self.gate.guard(user_id, mood_insight_check).allowed:
            return None
        try:
            return self.insights.analyze(draft) or None
        except Exception:
            logger.exception("Mood insight generation failed for user=%s", user_id)
            return None

    # Goals --------------------------------------------------------------------

    def list_goals(self, user_id: int) -> List[Goal]:
        return self.repository.list_goals(user_id)

    def create_goal(self, user_id: int, draft: GoalDraft) -> Goal:
        self.gate.enforce(user_id, goal_creation_check)
        goal = self.repository.create_goal(user_id, draft, start_date=self._now())
        self.repository.create_activity_log(user_id, ActivityType.GOAL.value, f"Created goal: {goal.title}")
        return goal

    def update_goal_progress(self, user_id: int, goal_id: int, progress: int) -> Optional[Goal]:
        """Set progress on the user's own goal; ``None`` when absent or not theirs."""

        if progress < 0:
            raise ValueError("progress must not be negative")
        goal = self.repository.get_goal(goal_id)
        if goal is None or goal.user_id != user_id:
            return None
        completed = progress >= goal.target
        updated = self.repository.set_goal_progress(goal_id, progress, completed)
        if updated is not None and completed and not goal.is_completed:
            self.repository.create_activity_log(
                user_id, ActivityType.GOAL.value, f"Completed goal: {goal.title}"
            )
        return updated

    # Integrations -------------------------------------------------------------

    def get_pf_integration(self, user_id: int) -> Optional[PlanetFitnessIntegration]:
        return self.repository.get_pf_integration(user_id)

    def connect_pf(self, user_id: int, link: PlanetFitnessLink) -> PlanetFitnessIntegration:
        self.gate.enforce(user_id, gym_card_check)
        integration = self.repository.upsert_pf_integration(user_id, link)
        self.repository.create_activity_log(
            user_id, ActivityType.INTEGRATION.value, "Connected Planet Fitness account"
        )
        return integration

    def pf_check_in(self, user_id: int) -> Optional[PlanetFitnessIntegration]:
        integration = self.repository.get_pf_integration(user_id)
        if integration is None:
            return None
        updated = self.repository.record_check_in(integration.id, self._now())
        self.repository.create_activity_log(
            user_id, ActivityType.GYM.value, f"Checked in at {integration.pf_home_gym or 'Planet Fitness'}"
        )
        return updated

    def get_apple_integration(self, user_id: int) -> Optional[AppleFitnessIntegration]:
        self.gate.enforce(user_id, fitness_sync_check)
        return self.repository.get_apple_integration(user_id)

    def connect_apple(self, user_id: int, is_connected: bool = True) -> AppleFitnessIntegration:
        context = self.gate.enforce(user_id, fitness_sync_check)
        if not is_connected:
            return self.repository.upsert_apple_integration(
                user_id, is_connected=False, sync_data=None, synced_at=None
            )
        now = self._now()
        snapshot = simulate_fitness_sync(
            now, full_history=context.resolution.is_at_least(Tier.PRO), rng=self._rng
        )
        integration = self.repository.upsert_apple_integration(
            user_id, is_connected=True, sync_data=snapshot, synced_at=now
        )
        self.repository.create_activity_log(
            user_id, ActivityType.INTEGRATION.value, "Synced Apple Fitness data"
        )
        return integration

    # Activity -----------------------------------------------------------------

    def list_activity(self, user_id: Optional[int] = None, limit: int = 100) -> List[ActivityLog]:
        return self.repository.list_activity_logs(user_id, max(limit, 1))

    def _now(self) -> datetime:
        return self.gate.now()
