"""In-memory fitness repository for tests and local development."""
from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from .models import (
    ActivityLog,
    AppleFitnessIntegration,
    Goal,
    GoalDraft,
    PlanetFitnessIntegration,
    PlanetFitnessLink,
    Workout,
    WorkoutDraft,
)


class InMemoryFitnessRepository:
    def __init__(self, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()
        self._workouts: Dict[int, Workout] = {}
        self._goals: Dict[int, Goal] = {}
        self._pf: Dict[int, PlanetFitnessIntegration] = {}
        self._apple: Dict[int, AppleFitnessIntegration] = {}
        self._activity: List[ActivityLog] = []
        self._ids: Dict[str, int] = {}

    def _next_id(self, table: str) -> int:
        self._ids[table] = self._ids.get(table, 0) + 1
        return self._ids[table]

    def list_workouts(self, user_id: int) -> List[Workout]:
        with self._lock:
            workouts = [w for w in self._workouts.values() if w.user_id == user_id]
        return sorted(workouts, key=lambda w: (w.date, w.id), reverse=True)

    def list_recent_workouts(self, user_id: int, limit: int) -> List[Workout]:
        return self.list_workouts(user_id)[:limit]

    def count_workouts_since(self, user_id: int, since: datetime) -> int:
        with self._lock:
            return sum(1 for w in self._workouts.values() if w.user_id == user_id and w.date >= since)

    def create_workout(
        self,
        user_id: int,
        draft: WorkoutDraft,
        *,
        date: datetime,
        calories_burned: int,
        ai_insights: Optional[str],
    ) -> Workout:
        with self._lock:
            workout = Workout(
                id=self._next_id("workouts"),
                user_id=user_id,
                date=date,
                calories_burned=calories_burned,
                ai_insights=ai_insights,
                **draft.model_dump(exclude={"date"}),
            )
            self._workouts[workout.id] = workout
            return workout

    def list_goals(self, user_id: int) -> List[Goal]:
        with self._lock:
            return [g for g in self._goals.values() if g.user_id == user_id]

    def count_active_goals(self, user_id: int) -> int:
        return sum(1 for g in self.list_goals(user_id) if not g.is_completed)

    def create_goal(self, user_id: int, draft: GoalDraft, *, start_date: datetime) -> Goal:
        with self._lock:
            goal = Goal(
                id=self._next_id("goals"),
                user_id=user_id,
                start_date=start_date,
                **draft.model_dump(),
            )
            self._goals[goal.id] = goal
            return goal

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        with self._lock:
            return self._goals.get(goal_id)

    def set_goal_progress(self, goal_id: int, progress: int, is_completed: bool) -> Optional[Goal]:
        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                return None
            updated = goal.model_copy(update={"progress": progress, "is_completed": is_completed})
            self._goals[goal_id] = updated
            return updated

    def get_pf_integration(self, user_id: int) -> Optional[PlanetFitnessIntegration]:
        with self._lock:
            return self._pf.get(user_id)

    def upsert_pf_integration(self, user_id: int, link: PlanetFitnessLink) -> PlanetFitnessIntegration:
        with self._lock:
            existing = self._pf.get(user_id)
            if existing is not None:
                integration = existing.model_copy(update=link.model_dump())
            else:
                integration = PlanetFitnessIntegration(
                    id=self._next_id("pf_integration"), user_id=user_id, **link.model_dump()
                )
            self._pf[user_id] = integration
            return integration

    def record_check_in(self, integration_id: int, checked_in_at: datetime) -> Optional[PlanetFitnessIntegration]:
        with self._lock:
            for user_id, integration in self._pf.items():
                if integration.id == integration_id:
                    updated = integration.model_copy(update={"last_check_in": checked_in_at})
                    self._pf[user_id] = updated
                    return updated
            return None

    def get_apple_integration(self, user_id: int) -> Optional[AppleFitnessIntegration]:
        with self._lock:
            return self._apple.get(user_id)

    def upsert_apple_integration(
        self,
        user_id: int,
        *,
        is_connected: bool,
        sync_data: Optional[Dict[str, Any]],
        synced_at: Optional[datetime],
    ) -> AppleFitnessIntegration:
        with self._lock:
            existing = self._apple.get(user_id)
            if existing is None:
                existing = AppleFitnessIntegration(id=self._next_id("apple_integration"), user_id=user_id)
            integration = existing.model_copy(
                update={
                    "is_connected": is_connected,
                    "sync_data": sync_data if sync_data is not None else existing.sync_data,
                    "last_synced": synced_at or existing.last_synced,
                }
            )
            self._apple[user_id] = integration
            return integration

    def create_activity_log(self, user_id: int, activity_type: str, description: str) -> ActivityLog:
        with self._lock:
            entry = ActivityLog(
                id=self._next_id("activity_logs"),
                user_id=user_id,
                activity_type=activity_type,
                description=description,
                timestamp=self._clock(),
            )
            self._activity.append(entry)
            return entry

    def list_activity_logs(self, user_id: Optional[int] = None, limit: Optional[int] = None) -> List[ActivityLog]:
        with self._lock:
            entries = [e for e in self._activity if user_id is None or e.user_id == user_id]
        entries.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return entries[:limit] if limit else entries
