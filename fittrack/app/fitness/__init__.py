"""Workouts, goals, gym integrations and the activity log."""

from .memory import InMemoryFitnessRepository
from .models import (
    CALORIES_PER_MINUTE,
    ActivityLog,
    ActivityType,
    AppleFitnessIntegration,
    Goal,
    GoalDraft,
    Intensity,
    PlanetFitnessIntegration,
    PlanetFitnessLink,
    Workout,
    WorkoutDraft,
    estimate_calories,
)
from .service import FitnessRepository, FitnessService, simulate_fitness_sync

__all__ = [
    "CALORIES_PER_MINUTE",
    "ActivityLog",
    "ActivityType",
    "AppleFitnessIntegration",
    "FitnessRepository",
    "FitnessService",
    "Goal",
    "GoalDraft",
    "InMemoryFitnessRepository",
    "Intensity",
    "PlanetFitnessIntegration",
    "PlanetFitnessLink",
    "Workout",
    "WorkoutDraft",
    "estimate_calories",
    "simulate_fitness_sync",
]
