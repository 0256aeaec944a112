"""Data models for intentions, check-ins and progress records."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

INCREMENT = "INCREMENT"
TOTAL = "TOTAL"

DAILY = "daily"
WEEKLY = "weekly"


def new_id() -> str:
    """Generate a stable record identifier."""
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class Intention:
    """A goal the user tracks (e.g. "Read 10 pages daily")."""
    id: str
    title: str
    target_value: float
    unit: str
    timeframe: str = DAILY  # "daily" or "weekly"
    is_active: bool = True
    category: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class IntentionSet:
    """The intentions being tracked from `started_at` until `ended_at`."""
    id: str
    started_at: datetime
    intention_ids: tuple[str, ...] = ()
    ended_at: Optional[datetime] = None  # None = current set


@dataclass(frozen=True)
class ProgressEntry:
    """A single recorded contribution or snapshot toward an intention.

    `INCREMENT` entries add `amount` to the day's running total, `TOTAL`
    entries replace it with an absolute value.
    """
    id: str
    intention_id: str
    intention_set_id: str
    date_key: str
    amount: float
    unit: str
    update_type: str
    created_at: datetime
    evidence: Optional[str] = None
    source_check_in_id: Optional[str] = None
    confidence: Optional[float] = None  # 0-1, set for extracted updates


@dataclass(frozen=True)
class ManualProgressOverride:
    """User replacement for the computed total of one intention on one day."""
    date_key: str
    intention_id: str
    amount: float
    unit: str
    updated_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class CheckIn:
    """A transcribed check-in tied to the intention set active when recorded."""
    id: str
    transcript: str
    created_at: datetime
    intention_set_id: str
    audio_file_name: Optional[str] = None


@dataclass(frozen=True)
class DailyMood:
    """Mood record for a single day."""
    date_key: str
    mood_label: Optional[str] = None
    mood_score: Optional[int] = None  # 0-10
    source_check_in_id: Optional[str] = None
    is_manual_override: bool = False
    updated_at: datetime = field(default_factory=_now)
