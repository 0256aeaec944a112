"""HTTP API models."""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from attune.checkins.recorder import CheckInResult
from attune.intentions.models import ParsedIntention
from attune.intentions.units import normalize_unit
from attune.progress.assembler import DayDetail, DayRow, IntentionHistory, IntentionProgress
from attune.progress.models import CheckIn, DailyMood, Intention


class IntentionModel(BaseModel):
    id: str
    title: str
    target_value: float
    unit: str
    timeframe: str
    is_active: bool
    category: Optional[str] = None

    @classmethod
    def from_record(cls, intention: Intention) -> "IntentionModel":
        return cls(
            id=intention.id,
            title=intention.title,
            target_value=intention.target_value,
            unit=intention.unit,
            timeframe=intention.timeframe,
            is_active=intention.is_active,
            category=intention.category,
        )


class EntryModel(BaseModel):
    """Progress entry with the running total at its time."""

    id: str
    amount: float
    unit: str
    update_type: str
    created_at: dt.datetime
    running_total: Optional[float] = None
    evidence: Optional[str] = None
    source_check_in_id: Optional[str] = None
    confidence: Optional[float] = None


class IntentionProgressModel(BaseModel):
    intention: IntentionModel
    total: float
    percent: float
    override_amount: Optional[float] = None
    entries: list[EntryModel] = []

    @classmethod
    def from_progress(cls, progress: IntentionProgress) -> "IntentionProgressModel":
        return cls(
            intention=IntentionModel.from_record(progress.intention),
            total=progress.total,
            percent=progress.percent,
            override_amount=progress.override_amount,
            entries=[
                EntryModel(
                    id=row.entry.id,
                    amount=row.entry.amount,
                    unit=row.entry.unit,
                    update_type=row.entry.update_type,
                    created_at=row.entry.created_at,
                    running_total=row.running_total,
                    evidence=row.entry.evidence,
                    source_check_in_id=row.entry.source_check_in_id,
                    confidence=row.entry.confidence,
                )
                for row in progress.entries
            ],
        )


class CheckInModel(BaseModel):
    id: str
    transcript: str
    created_at: dt.datetime

    @classmethod
    def from_record(cls, check_in: CheckIn) -> "CheckInModel":
        return cls(id=check_in.id, transcript=check_in.transcript, created_at=check_in.created_at)


class MoodModel(BaseModel):
    mood_label: Optional[str] = None
    mood_score: Optional[int] = None
    is_manual_override: bool = False

    @classmethod
    def from_record(cls, mood: Optional[DailyMood]) -> Optional["MoodModel"]:
        if mood is None:
            return None
        return cls(
            mood_label=mood.mood_label,
            mood_score=mood.mood_score,
            is_manual_override=mood.is_manual_override,
        )


class DayDetailResponse(BaseModel):
    """Response for /api/progress/days/{date_key}."""

    date_key: str
    date: dt.date
    intention_set_id: Optional[str] = None
    overall_percent: float = 0.0
    intentions: list[IntentionProgressModel] = []
    check_ins: list[CheckInModel] = []
    mood: Optional[MoodModel] = None

    @classmethod
    def from_detail(cls, detail: DayDetail) -> "DayDetailResponse":
        return cls(
            date_key=detail.date_key,
            date=detail.date,
            intention_set_id=detail.intention_set.id if detail.intention_set else None,
            overall_percent=detail.overall_percent,
            intentions=[IntentionProgressModel.from_progress(p) for p in detail.progress],
            check_ins=[CheckInModel.from_record(c) for c in detail.check_ins],
            mood=MoodModel.from_record(detail.mood),
        )


class DayRowResponse(BaseModel):
    date_key: str
    date: dt.date
    overall_percent: float
    mood_label: Optional[str] = None
    intention_set_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: DayRow) -> "DayRowResponse":
        return cls(
            date_key=row.date_key,
            date=row.date,
            overall_percent=row.overall_percent,
            mood_label=row.mood_label,
            intention_set_id=row.intention_set.id if row.intention_set else None,
        )


class IntentionDayModel(BaseModel):
    date_key: str
    date: dt.date
    total: float
    percent: float


class IntentionHistoryResponse(BaseModel):
    """Response for /api/intentions/{intention_id}/history."""

    intention: IntentionModel
    days: list[IntentionDayModel]

    @classmethod
    def from_history(cls, history: IntentionHistory) -> "IntentionHistoryResponse":
        return cls(
            intention=IntentionModel.from_record(history.intention),
            days=[
                IntentionDayModel(
                    date_key=row.date_key, date=row.date, total=row.total, percent=row.percent
                )
                for row in history.rows
            ],
        )


class StreakResponse(BaseModel):
    streak: int


class OverrideRequest(BaseModel):
    """Body for PUT /api/overrides/{date_key}/{intention_id}."""

    amount: float
    unit: Optional[str] = None


class OverrideResponse(BaseModel):
    date_key: str
    intention_id: str
    amount: float
    unit: str


class ParseRequest(BaseModel):
    """Body for POST /api/intentions/parse."""

    transcript: str = Field(..., min_length=1)


class ParsedIntentionModel(BaseModel):
    title: str
    target: float
    unit: str
    category: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_parsed(cls, parsed: ParsedIntention) -> "ParsedIntentionModel":
        return cls(
            title=parsed.title,
            target=parsed.target,
            unit=parsed.unit,
            category=parsed.category,
            notes=parsed.notes,
        )


class ParseResponse(BaseModel):
    intentions: list[ParsedIntentionModel]


class IntentionDraftModel(BaseModel):
    """Intention draft as returned by /api/intentions/parse."""

    title: str = Field(..., min_length=1)
    target: Optional[float] = None
    unit: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None

    def to_parsed(self) -> ParsedIntention:
        return ParsedIntention(
            title=self.title,
            target=self.target if self.target is not None else 1,
            unit=normalize_unit(self.unit),
            category=self.category,
            notes=self.notes,
        )


class IntentionSetRequest(BaseModel):
    """Body for POST /api/intention-sets."""

    intentions: list[IntentionDraftModel] = []


class IntentionSetResponse(BaseModel):
    intention_set_id: str
    started_at: dt.datetime
    intentions: list[IntentionModel]


class CheckInRequest(BaseModel):
    """Body for POST /api/check-ins."""

    transcript: str = Field(..., min_length=1)
    audio_file_name: Optional[str] = None


class CheckInResponse(BaseModel):
    """Response for POST /api/check-ins."""

    date_key: str
    check_in: CheckInModel
    entries: list[EntryModel]
    mood: Optional[MoodModel] = None
    used_fallback: bool = False

    @classmethod
    def from_result(cls, result: CheckInResult) -> "CheckInResponse":
        return cls(
            date_key=result.date_key,
            check_in=CheckInModel.from_record(result.check_in),
            entries=[
                EntryModel(
                    id=entry.id,
                    amount=entry.amount,
                    unit=entry.unit,
                    update_type=entry.update_type,
                    created_at=entry.created_at,
                    evidence=entry.evidence,
                    source_check_in_id=entry.source_check_in_id,
                    confidence=entry.confidence,
                )
                for entry in result.entries
            ],
            mood=MoodModel.from_record(result.mood),
            used_fallback=result.used_fallback,
        )
