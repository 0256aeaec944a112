"""Keyword-based progress updates for when extraction returns nothing.

Covers three common phrasings: working on the app, working out, and
reading. Amounts come from "N min" / "N pages" mentions in order.
"""

import logging
import re
from typing import Optional, Sequence

from attune.progress.models import INCREMENT, Intention

from .models import CheckInUpdate

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.7
DEFAULT_WORKOUT_MINUTES = 30

MINUTES_PATTERN = re.compile(r"(\d+)\s*(?:min|mins|minute|minutes)\b", re.IGNORECASE)
PAGES_PATTERN = re.compile(r"(\d+)\s*(?:pages?|page)\b", re.IGNORECASE)

WORKOUT_KEYWORDS = [
    "workout",
    "worked out",
    "gym",
    "exercise",
    "trained",
    "training",
    "run",
    "running",
    "jog",
    "jogging",
    "lift",
    "lifting",
    "weights",
    "weightlifting",
    "strength",
    "cardio",
    "hiit",
    "treadmill",
    "squat",
    "deadlift",
    "bench",
]


def _has_workout_keyword(text: str) -> bool:
    return any(keyword in text for keyword in WORKOUT_KEYWORDS)


def _is_workout_intention(intention: Intention) -> bool:
    if _has_workout_keyword(intention.title.lower()):
        return True
    return any(_has_workout_keyword(alias.lower()) for alias in intention.aliases)


def _update(intention: Intention, amount: float, unit: str) -> CheckInUpdate:
    return CheckInUpdate(
        intention_id=intention.id,
        update_type=INCREMENT,
        amount=amount,
        unit=unit,
        confidence=FALLBACK_CONFIDENCE,
    )


def _workout_amount(intention: Intention, minutes: list[float]) -> Optional[float]:
    unit = intention.unit.lower()
    if minutes:
        return minutes.pop(0)
    if "min" in unit:
        return intention.target_value if intention.target_value > 0 else DEFAULT_WORKOUT_MINUTES
    if "session" in unit or unit == "times" or "workout" in unit:
        return 1
    return None


def parse_fallback_updates(
    transcript: str, intentions: Sequence[Intention]
) -> list[CheckInUpdate]:
    """
    Build INCREMENT updates from keywords in a transcript.

    Args:
        transcript: Transcribed check-in text
        intentions: Current intentions, matched by title (and aliases
            for workouts)

    Returns:
        Updates with confidence FALLBACK_CONFIDENCE (possibly empty)
    """
    lower = transcript.lower()
    minutes = [float(m) for m in MINUTES_PATTERN.findall(lower)]
    pages = [float(p) for p in PAGES_PATTERN.findall(lower)]

    updates = []

    if "work" in lower and "on" in lower and "app" in lower:
        intention = next((i for i in intentions if "app" in i.title.lower()), None)
        if intention and minutes and "min" in intention.unit.lower():
            updates.append(_update(intention, minutes.pop(0), "minutes"))

    if _has_workout_keyword(lower):
        intention = next((i for i in intentions if _is_workout_intention(i)), None)
        if intention:
            amount = _workout_amount(intention, minutes)
            if amount is not None:
                unit = "minutes" if "min" in intention.unit.lower() else intention.unit
                updates.append(_update(intention, amount, unit))
            else:
                logger.debug(f"No fallback amount for workout unit {intention.unit}")

    if "read" in lower:
        intention = next((i for i in intentions if "read" in i.title.lower()), None)
        if intention and pages and "page" in intention.unit.lower():
            updates.append(_update(intention, pages.pop(0), "pages"))

    if updates:
        logger.info(f"checkin_fallback_used transcript_len={len(transcript)} updates={len(updates)}")

    return updates
