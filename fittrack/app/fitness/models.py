"""Workout, goal, integration and activity log models."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Intensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


CALORIES_PER_MINUTE: Dict[Intensity, int] = {
    Intensity.LOW: 5,
    Intensity.MEDIUM: 7,
    Intensity.HIGH: 10,
}


class ActivityType(str, Enum):
    WORKOUT = "workout"
    GOAL = "goal"
    MEMBERSHIP = "membership"
    GYM = "gym"
    INTEGRATION = "integration"


def estimate_calories(duration_minutes: int, intensity: Intensity) -> int:
    """Rough calorie estimate: minutes multiplied by a per-intensity rate."""

    return duration_minutes * CALORIES_PER_MINUTE[Intensity(intensity)]


class WorkoutDraft(BaseModel):
    workout_type: str = Field(min_length=1)
    exercise: str = Field(min_length=1)
    duration: int = Field(ge=1)
    intensity: Intensity
    notes: Optional[str] = None
    mood: Optional[str] = None
    mood_reason: Optional[str] = None
    date: Optional[datetime] = None


class Workout(BaseModel):
    id: int
    user_id: int
    workout_type: str
    exercise: str
    duration: int
    intensity: Intensity
    notes: Optional[str] = None
    calories_burned: Optional[int] = None
    date: datetime
    mood: Optional[str] = None
    mood_reason: Optional[str] = None
    ai_insights: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class GoalDraft(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    target: int = Field(ge=1)
    unit: str = Field(min_length=1)
    end_date: Optional[datetime] = None


class Goal(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    target: int
    unit: str
    progress: int = 0
    is_completed: bool = False
    start_date: datetime
    end_date: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class PlanetFitnessLink(BaseModel):
    pf_member_number: Optional[str] = None
    pf_qr_code: Optional[str] = None
    pf_home_gym: Optional[str] = None


class PlanetFitnessIntegration(BaseModel):
    id: int
    user_id: int
    pf_member_number: Optional[str] = None
    pf_qr_code: Optional[str] = None
    pf_home_gym: Optional[str] = None
    black_card_member: bool = False
    last_check_in: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class AppleFitnessIntegration(BaseModel):
    id: int
    user_id: int
    is_connected: bool = False
    last_synced: Optional[datetime] = None
    sync_data: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)


class ActivityLog(BaseModel):
    id: int
    user_id: int
    activity_type: str
    description: str
    timestamp: datetime

    model_config = ConfigDict(frozen=True)
