from .mood import (
    DEFAULT_MODEL,
    MoodInsightGenerator,
    OpenAIMoodInsightGenerator,
    build_mood_prompt,
    create_mood_insight_generator,
)

__all__ = [
    "DEFAULT_MODEL",
    "MoodInsightGenerator",
    "OpenAIMoodInsightGenerator",
    "build_mood_prompt",
    "create_mood_insight_generator",
]
