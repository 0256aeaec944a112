"""Mood score tiers."""

from enum import Enum
from typing import Optional

from .models import DailyMood


class MoodTier(str, Enum):
    VERY_LOW = "very_low"
    LOW = "low"
    NEUTRAL = "neutral"
    GOOD = "good"
    GREAT = "great"


MOOD_LABELS = {
    MoodTier.VERY_LOW: "Stressed",
    MoodTier.LOW: "Low",
    MoodTier.NEUTRAL: "Neutral",
    MoodTier.GOOD: "Good",
    MoodTier.GREAT: "Happy",
}


def mood_tier(score: int) -> MoodTier:
    """Map a 0-10 score to a tier. Out-of-range scores are clamped."""
    clamped = min(10, max(0, score))
    if clamped <= 2:
        return MoodTier.VERY_LOW
    elif clamped <= 4:
        return MoodTier.LOW
    elif clamped <= 6:
        return MoodTier.NEUTRAL
    elif clamped <= 8:
        return MoodTier.GOOD
    else:
        return MoodTier.GREAT


def mood_label(tier: MoodTier) -> str:
    return MOOD_LABELS[tier]


def display_label(mood: Optional[DailyMood]) -> Optional[str]:
    """Stored label, else the tier label for the score, else None."""
    if mood is None:
        return None
    if mood.mood_label:
        return mood.mood_label
    if mood.mood_score is not None:
        return mood_label(mood_tier(mood.mood_score))
    return None
