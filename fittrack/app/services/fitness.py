"""Application wiring for workouts, goals and integrations."""
from __future__ import annotations

from functools import lru_cache

from ..feature_gates import FeatureGate
from ..fitness import FitnessService
from ..fitness.repository import PostgresFitnessRepository
from ..insights import create_mood_insight_generator
from .memberships import get_app_config, get_entitlement_resolver


@lru_cache(maxsize=1)
def get_fitness_repository() -> PostgresFitnessRepository:
    return PostgresFitnessRepository()


@lru_cache(maxsize=1)
def get_feature_gate() -> FeatureGate:
    return FeatureGate(get_entitlement_resolver(), get_fitness_repository())


@lru_cache(maxsize=1)
def get_fitness_service() -> FitnessService:
    config = get_app_config()
    return FitnessService(
        get_fitness_repository(),
        get_feature_gate(),
        insights=create_mood_insight_generator(config.openai_api_key, model=config.openai_model),
    )


__all__ = ["get_feature_gate", "get_fitness_repository", "get_fitness_service"]
