"""API schemas for workouts, goals, integrations and activity logs."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..fitness import (
    ActivityLog,
    AppleFitnessIntegration,
    Goal,
    GoalDraft,
    Intensity,
    PlanetFitnessIntegration,
    PlanetFitnessLink,
    Workout,
    WorkoutDraft,
)


class WorkoutCreateRequest(BaseModel):
    workout_type: str = Field(alias="workoutType", min_length=1, max_length=40)
    exercise: str = Field(min_length=1, max_length=120)
    duration: int = Field(ge=1, le=24 * 60)
    intensity: Intensity
    notes: Optional[str] = Field(default=None, max_length=2000)
    mood: Optional[str] = Field(default=None, max_length=16)
    mood_reason: Optional[str] = Field(alias="moodReason", default=None, max_length=500)
    date: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_draft(self) -> WorkoutDraft:
        return WorkoutDraft(**self.model_dump())


class WorkoutOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    workout_type: str = Field(alias="workoutType")
    exercise: str
    duration: int
    intensity: Intensity
    notes: Optional[str] = None
    calories_burned: Optional[int] = Field(alias="caloriesBurned", default=None)
    date: datetime
    mood: Optional[str] = None
    mood_reason: Optional[str] = Field(alias="moodReason", default=None)
    ai_insights: Optional[str] = Field(alias="aiInsights", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_workout(cls, workout: Workout) -> "WorkoutOut":
        return cls(**workout.model_dump())


class GoalCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=1000)
    target: int = Field(ge=1)
    unit: str = Field(min_length=1, max_length=32)
    end_date: Optional[datetime] = Field(alias="endDate", default=None)

    model_config = ConfigDict(populate_by_name=True)

    def to_draft(self) -> GoalDraft:
        return GoalDraft(**self.model_dump())


class GoalProgressRequest(BaseModel):
    progress: int


class GoalOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    title: str
    description: Optional[str] = None
    target: int
    unit: str
    progress: int
    is_completed: bool = Field(alias="isCompleted")
    start_date: datetime = Field(alias="startDate")
    end_date: Optional[datetime] = Field(alias="endDate", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_goal(cls, goal: Goal) -> "GoalOut":
        return cls(**goal.model_dump())


class PlanetFitnessRequest(BaseModel):
    pf_member_number: Optional[str] = Field(alias="pfMemberNumber", default=None, max_length=64)
    pf_qr_code: Optional[str] = Field(alias="pfQrCode", default=None, max_length=512)
    pf_home_gym: Optional[str] = Field(alias="pfHomeGym", default=None, max_length=120)

    model_config = ConfigDict(populate_by_name=True)

    def to_link(self) -> PlanetFitnessLink:
        return PlanetFitnessLink(**self.model_dump())


class PlanetFitnessOut(BaseModel):
    connected: bool = True
    id: Optional[int] = None
    user_id: Optional[int] = Field(alias="userId", default=None)
    pf_member_number: Optional[str] = Field(alias="pfMemberNumber", default=None)
    pf_qr_code: Optional[str] = Field(alias="pfQrCode", default=None)
    pf_home_gym: Optional[str] = Field(alias="pfHomeGym", default=None)
    black_card_member: bool = Field(alias="blackCardMember", default=False)
    last_check_in: Optional[datetime] = Field(alias="lastCheckIn", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_integration(cls, integration: Optional[PlanetFitnessIntegration]) -> "PlanetFitnessOut":
        if integration is None:
            return cls(connected=False)
        return cls(connected=True, **integration.model_dump())


class AppleFitnessRequest(BaseModel):
    is_connected: bool = Field(alias="isConnected", default=True)

    model_config = ConfigDict(populate_by_name=True)


class AppleFitnessOut(BaseModel):
    is_connected: bool = Field(alias="isConnected", default=False)
    last_synced: Optional[datetime] = Field(alias="lastSynced", default=None)
    sync_data: Optional[Dict[str, Any]] = Field(alias="syncData", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_integration(cls, integration: Optional[AppleFitnessIntegration]) -> "AppleFitnessOut":
        if integration is None:
            return cls()
        return cls(
            is_connected=integration.is_connected,
            last_synced=integration.last_synced,
            sync_data=integration.sync_data,
        )


class ActivityLogOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    activity_type: str = Field(alias="activityType")
    description: str
    timestamp: datetime

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_log(cls, entry: ActivityLog) -> "ActivityLogOut":
        return cls(**entry.model_dump())
