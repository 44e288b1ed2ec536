"""PostgreSQL persistence for workouts, goals, integrations and activity logs.

Expected schema (abridged)::

    workouts(id serial, user_id integer, workout_type text, exercise text,
             duration integer, intensity text, notes text, calories_burned integer,
             date timestamptz, mood text, mood_reason text, ai_insights text)
    goals(id serial, user_id integer, title text, description text, target integer,
          unit text, progress integer, is_completed boolean,
          start_date timestamptz, end_date timestamptz)
    pf_integration(id serial, user_id integer unique, pf_member_number text,
                   pf_qr_code text, pf_home_gym text, black_card_member boolean,
                   last_check_in timestamptz)
    apple_integration(id serial, user_id integer unique, is_connected boolean,
                      last_synced timestamptz, sync_data jsonb)
    activity_logs(id serial, user_id integer, activity_type text,
                  description text, timestamp timestamptz)
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..memberships.repository import managed_connection
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


class PostgresFitnessRepository:
    """Stores fitness data in PostgreSQL; rows map straight onto the models."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()

    def _fetch_all(self, query: str, params: Any = None) -> List[Dict[str, Any]]:
        with self._cursor() as cursor:
            cursor.execute(query, params)
            return list(cursor.fetchall() or [])

    def _fetch_one(self, query: str, params: Any = None) -> Optional[Dict[str, Any]]:
        with self._cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchone()

    # Workouts

    def list_workouts(self, user_id: int) -> List[Workout]:
        rows = self._fetch_all(
            "SELECT * FROM workouts WHERE user_id = %s ORDER BY date DESC, id DESC", (user_id,)
        )
        return [Workout.model_validate(dict(row)) for row in rows]

    def list_recent_workouts(self, user_id: int, limit: int) -> List[Workout]:
        rows = self._fetch_all(
            "SELECT * FROM workouts WHERE user_id = %s ORDER BY date DESC, id DESC LIMIT %s",
            (user_id, limit),
        )
        return [Workout.model_validate(dict(row)) for row in rows]

    def count_workouts_since(self, user_id: int, since: datetime) -> int:
        row = self._fetch_one(
            "SELECT COUNT(*) AS total FROM workouts WHERE user_id = %s AND date >= %s",
            (user_id, since),
        )
        return int(row["total"]) if row else 0

    def create_workout(
        self,
        user_id: int,
        draft: WorkoutDraft,
        *,
        date: datetime,
        calories_burned: int,
        ai_insights: Optional[str],
    ) -> Workout:
        row = self._fetch_one(
            """
            INSERT INTO workouts (
                user_id, workout_type, exercise, duration, intensity, notes,
                calories_burned, date, mood, mood_reason, ai_insights
            )
            VALUES (
                %(user_id)s, %(workout_type)s, %(exercise)s, %(duration)s, %(intensity)s, %(notes)s,
                %(calories_burned)s, %(date)s, %(mood)s, %(mood_reason)s, %(ai_insights)s
            )
            RETURNING *
            """,
            {
                "user_id": user_id,
                "workout_type": draft.workout_type,
                "exercise": draft.exercise,
                "duration": draft.duration,
                "intensity": draft.intensity.value,
                "notes": draft.notes,
                "calories_burned": calories_burned,
                "date": date,
                "mood": draft.mood,
                "mood_reason": draft.mood_reason,
                "ai_insights": ai_insights,
            },
        )
        return Workout.model_validate(dict(row))

    # Goals

    def list_goals(self, user_id: int) -> List[Goal]:
        rows = self._fetch_all("SELECT * FROM goals WHERE user_id = %s ORDER BY id", (user_id,))
        return [Goal.model_validate(dict(row)) for row in rows]

    def count_active_goals(self, user_id: int) -> int:
        row = self._fetch_one(
            "SELECT COUNT(*) AS total FROM goals WHERE user_id = %s AND NOT is_completed",
            (user_id,),
        )
        return int(row["total"]) if row else 0

    def create_goal(self, user_id: int, draft: GoalDraft, *, start_date: datetime) -> Goal:
        row = self._fetch_one(
            """
            INSERT INTO goals (user_id, title, description, target, unit, progress, is_completed, start_date, end_date)
            VALUES (%s, %s, %s, %s, %s, 0, FALSE, %s, %s)
            RETURNING *
            """,
            (user_id, draft.title, draft.description, draft.target, draft.unit, start_date, draft.end_date),
        )
        return Goal.model_validate(dict(row))

    def get_goal(self, goal_id: int) -> Optional[Goal]:
        row = self._fetch_one("SELECT * FROM goals WHERE id = %s", (goal_id,))
        return Goal.model_validate(dict(row)) if row else None

    def set_goal_progress(self, goal_id: int, progress: int, is_completed: bool) -> Optional[Goal]:
        row = self._fetch_one(
            "UPDATE goals SET progress = %s, is_completed = %s WHERE id = %s RETURNING *",
            (progress, is_completed, goal_id),
        )
        return Goal.model_validate(dict(row)) if row else None

    # Integrations

    def get_pf_integration(self, user_id: int) -> Optional[PlanetFitnessIntegration]:
        row = self._fetch_one("SELECT * FROM pf_integration WHERE user_id = %s", (user_id,))
        return PlanetFitnessIntegration.model_validate(dict(row)) if row else None

    def upsert_pf_integration(self, user_id: int, link: PlanetFitnessLink) -> PlanetFitnessIntegration:
        row = self._fetch_one(
            """
            INSERT INTO pf_integration (user_id, pf_member_number, pf_qr_code, pf_home_gym)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (user_id) DO UPDATE
            SET pf_member_number = EXCLUDED.pf_member_number,
                pf_qr_code = EXCLUDED.pf_qr_code,
                pf_home_gym = EXCLUDED.pf_home_gym
            RETURNING *
            """,
            (user_id, link.pf_member_number, link.pf_qr_code, link.pf_home_gym),
        )
        return PlanetFitnessIntegration.model_validate(dict(row))

    def record_check_in(self, integration_id: int, checked_in_at: datetime) -> Optional[PlanetFitnessIntegration]:
        row = self._fetch_one(
            "UPDATE pf_integration SET last_check_in = %s WHERE id = %s RETURNING *",
            (checked_in_at, integration_id),
        )
        return PlanetFitnessIntegration.model_validate(dict(row)) if row else None

    def get_apple_integration(self, user_id: int) -> Optional[AppleFitnessIntegration]:
        row = self._fetch_one("SELECT * FROM apple_integration WHERE user_id = %s", (user_id,))
        return AppleFitnessIntegration.model_validate(dict(row)) if row else None

    def upsert_apple_integration(
        self,
        user_id: int,
        *,
        is_connected: bool,
        sync_data: Optional[Dict[str, Any]],
        synced_at: Optional[datetime],
    ) -> AppleFitnessIntegration:
        row = self._fetch_one(
            """
            INSERT INTO apple_integration (user_id, is_connected, last_synced, sync_data)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (user_id) DO UPDATE
            SET is_connected = EXCLUDED.is_connected,
                last_synced = COALESCE(EXCLUDED.last_synced, apple_integration.last_synced),
                sync_data = COALESCE(EXCLUDED.sync_data, apple_integration.sync_data)
            RETURNING *
            """,
            (user_id, is_connected, synced_at, psycopg2.extras.Json(sync_data) if sync_data is not None else None),
        )
        return AppleFitnessIntegration.model_validate(dict(row))

    # Activity

    def create_activity_log(self, user_id: int, activity_type: str, description: str) -> ActivityLog:
        row = self._fetch_one(
            """
            INSERT INTO activity_logs (user_id, activity_type, description, timestamp)
            VALUES (%s, %s, %s, NOW())
            RETURNING *
            """,
            (user_id, activity_type, description),
        )
        return ActivityLog.model_validate(dict(row))

    def list_activity_logs(self, user_id: Optional[int] = None, limit: Optional[int] = None) -> List[ActivityLog]:
        clauses = []
        params: List[Any] = []
        if user_id is not None:
            clauses.append("WHERE user_id = %s")
            params.append(user_id)
        clauses.append("ORDER BY timestamp DESC, id DESC")
        if limit:
            clauses.append("LIMIT %s")
            params.append(limit)
        rows = self._fetch_all(f"SELECT * FROM activity_logs {' '.join(clauses)}", tuple(params))
        return [ActivityLog.model_validate(dict(row)) for row in rows]
