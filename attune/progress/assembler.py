"""Assemble day-level and intention-level progress views from store reads."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Protocol, Sequence

from . import calculator
from .models import CheckIn, DailyMood, Intention, IntentionSet, ProgressEntry
from .mood import display_label
from .streak import MAX_DAYS_TO_CHECK, compute_streak, intention_set_active_on, set_key

logger = logging.getLogger(__name__)

DAYS_TO_SHOW = 7


class ProgressReader(Protocol):
    """Read-only store interface the assembler depends on."""

    def load_all_intention_sets(self) -> list[IntentionSet]: ...

    def load_intentions(self, ids: Sequence[str]) -> list[Intention]: ...

    def load_entries(self, date_key: str, intention_set_id: str) -> list[ProgressEntry]: ...

    def load_all_progress_entries(self) -> list[ProgressEntry]: ...

    def load_check_ins(self, intention_set_id: str, date_key: str) -> list[CheckIn]: ...

    def load_all_check_ins(self) -> list[CheckIn]: ...

    def load_overrides_for_date(self, date_key: str) -> dict[str, float]: ...

    def load_daily_mood(self, date_key: str) -> Optional[DailyMood]: ...


@dataclass
class EntryRow:
    """A progress entry with the running INCREMENT total at its time."""
    entry: ProgressEntry
    running_total: float


@dataclass
class IntentionProgress:
    """One intention's progress on a single day."""
    intention: Intention
    total: float
    percent: float
    override_amount: Optional[float] = None
    entries: list[EntryRow] = field(default_factory=list)

    @property
    def is_overridden(self) -> bool:
        return self.override_amount is not None


@dataclass
class DayDetail:
    """Everything shown for a single day."""
    date_key: str
    date: date
    intention_set: Optional[IntentionSet]
    intentions: list[Intention]
    entries_by_intention_id: dict[str, list[ProgressEntry]]
    check_ins: list[CheckIn]
    mood: Optional[DailyMood]
    overrides_by_intention_id: dict[str, float]
    progress: list[IntentionProgress] = field(default_factory=list)
    overall_percent: float = 0.0


@dataclass
class DayRow:
    """Row in the daily totals list."""
    date_key: str
    date: date
    overall_percent: float
    mood_label: Optional[str] = None
    intention_set: Optional[IntentionSet] = None


@dataclass
class IntentionDayRow:
    date_key: str
    date: date
    total: float = 0.0
    percent: float = 0.0


@dataclass
class IntentionHistory:
    """One intention over the trailing days (fixed length, today first)."""
    intention: Intention
    rows: list[IntentionDayRow]


class ProgressDataAssembler:
    """Builds progress view models from an injected store reader."""

    def __init__(self, reader: ProgressReader, days_to_show: int = DAYS_TO_SHOW):
        """
        Initialize with a store reader.

        Args:
            reader: Store providing the read interface
            days_to_show: Length of trailing-day series
        """
        self.reader = reader
        self.days_to_show = days_to_show

    def last_date_keys(self, today: Optional[date] = None) -> list[tuple[str, date]]:
        """Trailing day keys, today first, stepping backwards."""
        today = today or date.today()
        days = [today - timedelta(days=offset) for offset in range(self.days_to_show)]
        return [(calculator.date_key(day), day) for day in days]

    def load_day_detail(self, day_key: str) -> DayDetail:
        """
        Full detail for one day.

        Missing intention set yields an empty detail (mood and overrides
        are still loaded) rather than an error.
        """
        day = calculator.parse_date_key(day_key) or date.today()
        sets = self.reader.load_all_intention_sets()
        mood = self.reader.load_daily_mood(day_key)
        overrides = dict(self.reader.load_overrides_for_date(day_key))

        intention_set = intention_set_active_on(day_key, sets)
        if intention_set is None:
            logger.debug(f"No intention set active on {day_key}")
            return DayDetail(
                date_key=day_key,
                date=day,
                intention_set=None,
                intentions=[],
                entries_by_intention_id={},
                check_ins=[],
                mood=mood,
                overrides_by_intention_id=overrides,
            )

        intentions = self._active_intentions(intention_set)
        entries = self.reader.load_entries(day_key, intention_set.id)
        check_ins = self.reader.load_check_ins(intention_set.id, day_key)

        grouped = defaultdict(list)
        for entry in entries:
            grouped[entry.intention_id].append(entry)
        entries_by_intention_id = {
            intention_id: sorted(group, key=lambda e: calculator.as_local(e.created_at))
            for intention_id, group in grouped.items()
        }

        progress = []
        totals = {}
        for intention in intentions:
            intention_entries = entries_by_intention_id.get(intention.id, [])
            override = overrides.get(intention.id)
            total = calculator.total_for_intention(
                intention_entries,
                day_key,
                intention.id,
                intention_set.id,
                override_amount=override,
            )
            totals[intention.id] = total
            rows = [
                EntryRow(
                    entry=entry,
                    running_total=calculator.cumulative_increment_amount_up_to(
                        intention_entries,
                        day_key,
                        intention.id,
                        intention_set.id,
                        entry.created_at,
                    ),
                )
                for entry in intention_entries
            ]
            progress.append(
                IntentionProgress(
                    intention=intention,
                    total=total,
                    percent=calculator.percent_complete(
                        total, intention.target_value, intention.timeframe
                    ),
                    override_amount=override,
                    entries=rows,
                )
            )

        return DayDetail(
            date_key=day_key,
            date=day,
            intention_set=intention_set,
            intentions=intentions,
            entries_by_intention_id=entries_by_intention_id,
            check_ins=sorted(check_ins, key=lambda c: calculator.as_local(c.created_at)),
            mood=mood,
            overrides_by_intention_id=overrides,
            progress=progress,
            overall_percent=calculator.overall_percent_complete(intentions, totals),
        )

    def load_day_rows(self, today: Optional[date] = None) -> list[DayRow]:
        """
        Overall percent for each of the trailing days.

        Every day resolves its own intention set; nothing carries over
        from one day to the next.
        """
        sets = self.reader.load_all_intention_sets()
        intentions_by_set_id = self._intentions_by_set_id(sets)
        entries_by_set_and_date = self._entries_by_set_and_date()

        rows = []
        for day_key, day in self.last_date_keys(today):
            intention_set = intention_set_active_on(day_key, sets)
            overall = 0.0

            if intention_set is not None:
                intentions = intentions_by_set_id.get(intention_set.id, [])
                entries = entries_by_set_and_date.get(set_key(intention_set.id, day_key), [])
                overrides = self.reader.load_overrides_for_date(day_key)
                totals = {
                    intention.id: calculator.total_for_intention(
                        entries,
                        day_key,
                        intention.id,
                        intention_set.id,
                        override_amount=overrides.get(intention.id),
                    )
                    for intention in intentions
                }
                overall = calculator.overall_percent_complete(intentions, totals)

            rows.append(
                DayRow(
                    date_key=day_key,
                    date=day,
                    overall_percent=overall,
                    mood_label=display_label(self.reader.load_daily_mood(day_key)),
                    intention_set=intention_set,
                )
            )

        return rows

    def load_intention_history(
        self, intention: Intention, today: Optional[date] = None
    ) -> IntentionHistory:
        """
        One intention across the trailing days.

        Days whose active set does not include the intention get a zero
        row, so the series always has days_to_show rows.
        """
        sets = self.reader.load_all_intention_sets()

        rows = []
        for day_key, day in self.last_date_keys(today):
            active_set = intention_set_active_on(day_key, sets)
            if active_set is None or intention.id not in active_set.intention_ids:
                rows.append(IntentionDayRow(date_key=day_key, date=day))
                continue

            entries = self.reader.load_entries(day_key, active_set.id)
            override = self.reader.load_overrides_for_date(day_key).get(intention.id)
            total = calculator.total_for_intention(
                entries, day_key, intention.id, active_set.id, override_amount=override
            )
            rows.append(
                IntentionDayRow(
                    date_key=day_key,
                    date=day,
                    total=total,
                    percent=calculator.percent_complete(
                        total, intention.target_value, intention.timeframe
                    ),
                )
            )

        return IntentionHistory(intention=intention, rows=rows)

    def load_current_intentions(self, today: Optional[date] = None) -> list[Intention]:
        """Active intentions of the set in effect today."""
        today = today or date.today()
        sets = self.reader.load_all_intention_sets()
        intention_set = intention_set_active_on(calculator.date_key(today), sets)
        if intention_set is None:
            return []
        return self._active_intentions(intention_set)

    def load_streak(self, today: Optional[date] = None) -> int:
        """Current streak of days at or above the completion threshold."""
        today = today or date.today()
        sets = self.reader.load_all_intention_sets()
        if not sets:
            return 0

        check_ins_by_set_and_date = defaultdict(list)
        for check_in in self.reader.load_all_check_ins():
            key = set_key(check_in.intention_set_id, calculator.date_key(check_in.created_at))
            check_ins_by_set_and_date[key].append(check_in)

        overrides_by_date = {}
        for offset in range(MAX_DAYS_TO_CHECK):
            day_key = calculator.date_key(today - timedelta(days=offset))
            overrides_by_date[day_key] = self.reader.load_overrides_for_date(day_key)

        return compute_streak(
            all_intention_sets=sets,
            intentions_by_set_id=self._intentions_by_set_id(sets),
            entries_by_set_and_date=self._entries_by_set_and_date(),
            check_ins_by_set_and_date=check_ins_by_set_and_date,
            overrides_by_date=overrides_by_date,
            today=today,
        )

    def _active_intentions(self, intention_set: IntentionSet) -> list[Intention]:
        intentions = self.reader.load_intentions(list(intention_set.intention_ids))
        return [intention for intention in intentions if intention.is_active]

    def _intentions_by_set_id(self, sets: Sequence[IntentionSet]) -> dict[str, list[Intention]]:
        return {intention_set.id: self._active_intentions(intention_set) for intention_set in sets}

    def _entries_by_set_and_date(self) -> dict[str, list[ProgressEntry]]:
        grouped = defaultdict(list)
        for entry in self.reader.load_all_progress_entries():
            grouped[set_key(entry.intention_set_id, entry.date_key)].append(entry)
        return grouped
