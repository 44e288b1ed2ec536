"""Workout and goal routes."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..schemas.fitness import (
    GoalCreateRequest,
    GoalOut,
    GoalProgressRequest,
    WorkoutCreateRequest,
    WorkoutOut,
)
from ..services.fitness import get_fitness_service
from .dependencies import get_current_user

router = APIRouter(prefix="/api", tags=["fitness"])


@router.get("/workouts", response_model=List[WorkoutOut])
def list_workouts(*, current_user=Depends(get_current_user)) -> List[WorkoutOut]:
    return [WorkoutOut.from_workout(w) for w in get_fitness_service().list_workouts(current_user.id)]


@router.get("/workouts/recent", response_model=List[WorkoutOut])
def list_recent_workouts(
    limit: int = Query(5, ge=1, le=50),
    *,
    current_user=Depends(get_current_user),
) -> List[WorkoutOut]:
    workouts = get_fitness_service().recent_workouts(current_user.id, limit)
    return [WorkoutOut.from_workout(w) for w in workouts]


@router.post("/workouts", response_model=WorkoutOut, status_code=status.HTTP_201_CREATED)
def create_workout(
    payload: WorkoutCreateRequest,
    *,
    current_user=Depends(get_current_user),
) -> WorkoutOut:
    workout = get_fitness_service().create_workout(current_user.id, payload.to_draft())
    return WorkoutOut.from_workout(workout)


@router.get("/goals", response_model=List[GoalOut])
def list_goals(*, current_user=Depends(get_current_user)) -> List[GoalOut]:
    return [GoalOut.from_goal(goal) for goal in get_fitness_service().list_goals(current_user.id)]


@router.post("/goals", response_model=GoalOut, status_code=status.HTTP_201_CREATED)
def create_goal(
    payload: GoalCreateRequest,
    *,
    current_user=Depends(get_current_user),
) -> GoalOut:
    goal = get_fitness_service().create_goal(current_user.id, payload.to_draft())
    return GoalOut.from_goal(goal)


@router.patch("/goals/{goal_id}/progress", response_model=GoalOut)
def update_goal_progress(
    goal_id: int,
    payload: GoalProgressRequest,
    *,
    current_user=Depends(get_current_user),
) -> GoalOut:
    try:
        goal = get_fitness_service().update_goal_progress(current_user.id, goal_id, payload.progress)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if goal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return GoalOut.from_goal(goal)
