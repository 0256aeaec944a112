"""Unit normalization for LLM-extracted intentions."""

from typing import Optional

DEFAULT_UNIT = "times"

# Every spoken variant maps to one canonical unit. Anything else becomes
# DEFAULT_UNIT, so units like "laps" are currently lost.
UNIT_SYNONYMS = {
    "minute": "minutes",
    "minutes": "minutes",
    "min": "minutes",
    "page": "pages",
    "pages": "pages",
    "time": "times",
    "times": "times",
    "mile": "miles",
    "miles": "miles",
    "mi": "miles",
    "step": "steps",
    "steps": "steps",
    "session": "sessions",
    "sessions": "sessions",
    "rep": "reps",
    "reps": "reps",
    "cup": "cups",
    "cups": "cups",
    "glass": "glasses",
    "glasses": "glasses",
}

CANONICAL_UNITS = tuple(sorted(set(UNIT_SYNONYMS.values())))


def normalize_unit(raw_unit: Optional[str]) -> str:
    """
    Map a free-form unit string to the supported vocabulary.

    Args:
        raw_unit: Unit as returned by the model (may be None or blank)

    Returns:
        Canonical unit, or "times" for empty and unrecognized input
    """
    if not isinstance(raw_unit, str):
        return DEFAULT_UNIT

    unit = raw_unit.strip().lower()
    if not unit:
        return DEFAULT_UNIT

    return UNIT_SYNONYMS.get(unit, DEFAULT_UNIT)
