"""Short AI-written observations about how a workout felt."""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from openai import OpenAI, OpenAIError

from ..fitness.models import WorkoutDraft

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"

SYSTEM_PROMPT = (
    "You are a fitness coach that provides brief, positive workout mood analysis. "
    "Provide a single sentence response about what the user's mood might indicate. "
    "Be encouraging and keep responses very short and practical."
)


class MoodInsightGenerator(Protocol):
    def analyze(self, workout: WorkoutDraft) -> str:
        ...


def build_mood_prompt(workout: WorkoutDraft) -> str:
    return (
        "Analyze this workout entry with mood data and provide a quick insight:\n"
        f"Workout Type: {workout.workout_type}\n"
        f"Exercise: {workout.exercise}\n"
        f"Duration: {workout.duration} minutes\n"
        f"Intensity: {workout.intensity.value}\n"
        f"Mood: {workout.mood}\n"
        f"Mood Reason: {workout.mood_reason or 'Not provided'}"
    )


class OpenAIMoodInsightGenerator:
    """Asks a chat model for a one-sentence mood read; any failure yields ``""``."""

    def __init__(self, client: Any, *, model: str = DEFAULT_MODEL) -> None:
        self._client = client
        self._model = model

    def analyze(self, workout: WorkoutDraft) -> str:
        if not workout.mood:
            return ""
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_mood_prompt(workout)},
                ],
                max_tokens=100,
                temperature=0.7,
            )
        except OpenAIError as exc:
            logger.warning("Mood insight request failed: %s", exc)
            return ""
        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()


def create_mood_insight_generator(
    api_key: Optional[str], *, model: str = DEFAULT_MODEL
) -> Optional[OpenAIMoodInsightGenerator]:
    if not api_key:
        logger.info("OPENAI_API_KEY not configured; mood insights disabled")
        return None
    return OpenAIMoodInsightGenerator(OpenAI(api_key=api_key), model=model)
