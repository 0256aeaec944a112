"""Data models for intentions and progress updates parsed from transcripts."""

from dataclasses import dataclass, field
from typing import Optional

from attune.intentions.units import DEFAULT_UNIT
from attune.progress.models import DAILY, Intention, new_id


@dataclass(frozen=True)
class ParsedIntention:
    """A single intention parsed from a transcript before persistence."""
    title: str
    target: float = 1
    unit: str = DEFAULT_UNIT
    category: Optional[str] = None
    notes: Optional[str] = None

    def to_intention(self) -> Intention:
        """Build a new active daily intention draft for the edit form."""
        target = self.target if self.target is not None else 1
        return Intention(
            id=new_id(),
            title=self.title.strip(),
            target_value=max(0.0, float(target)),
            unit=self.unit or DEFAULT_UNIT,
            timeframe=DAILY,
            category=self.category,
        )


@dataclass(frozen=True)
class LocalTime:
    """Clock time (24h, local) the user said an update took place."""
    hour24: int
    minute: int


@dataclass(frozen=True)
class CheckInUpdate:
    """A single progress update extracted from a check-in transcript.

    `update_type` is "INCREMENT" (add to the running total) or "TOTAL"
    (absolute value for the day).
    """
    intention_id: str
    update_type: str
    amount: float
    unit: str
    confidence: float
    evidence: Optional[str] = None
    took_place_local_time: Optional[LocalTime] = None
    time_interpretation: Optional[str] = None  # explicit_time, just_now, unspecified


@dataclass(frozen=True)
class CheckInExtraction:
    """Updates and optional mood extracted from one check-in."""
    updates: list[CheckInUpdate] = field(default_factory=list)
    mood_label: Optional[str] = None
    mood_score: Optional[int] = None

    @property
    def has_mood(self) -> bool:
        return self.mood_label is not None or self.mood_score is not None
