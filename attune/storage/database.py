"""Simple SQLite database for intentions, check-ins and progress."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from attune.progress import calculator
from attune.progress.models import (
    INCREMENT,
    TOTAL,
    CheckIn,
    DailyMood,
    Intention,
    IntentionSet,
    ManualProgressOverride,
    ProgressEntry,
    new_id,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS intentions (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    target_value REAL NOT NULL,
    unit TEXT NOT NULL,
    timeframe TEXT NOT NULL,
    is_active INTEGER NOT NULL,
    category TEXT,
    created_at TEXT NOT NULL,
    aliases TEXT NOT NULL DEFAULT '[]'
);
CREATE TABLE IF NOT EXISTS intention_sets (
    id TEXT PRIMARY KEY,
    started_at TEXT NOT NULL,
    ended_at TEXT,
    intention_ids TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS progress_entries (
    id TEXT PRIMARY KEY,
    intention_id TEXT NOT NULL,
    intention_set_id TEXT NOT NULL,
    date_key TEXT NOT NULL,
    amount REAL NOT NULL,
    unit TEXT NOT NULL,
    update_type TEXT NOT NULL,
    created_at TEXT NOT NULL,
    evidence TEXT,
    source_check_in_id TEXT,
    confidence REAL
);
CREATE INDEX IF NOT EXISTS idx_entries_day ON progress_entries (date_key, intention_set_id);
CREATE TABLE IF NOT EXISTS check_ins (
    id TEXT PRIMARY KEY,
    transcript TEXT NOT NULL,
    created_at TEXT NOT NULL,
    date_key TEXT NOT NULL,
    intention_set_id TEXT NOT NULL,
    audio_file_name TEXT
);
CREATE TABLE IF NOT EXISTS progress_overrides (
    date_key TEXT NOT NULL,
    intention_id TEXT NOT NULL,
    amount REAL NOT NULL,
    unit TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (date_key, intention_id)
);
CREATE TABLE IF NOT EXISTS daily_moods (
    date_key TEXT PRIMARY KEY,
    mood_label TEXT,
    mood_score INTEGER,
    source_check_in_id TEXT,
    is_manual_override INTEGER NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def _ts(value: Optional[datetime]) -> Optional[str]:
    return calculator.as_local(value).isoformat() if value else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    return calculator.as_local(datetime.fromisoformat(value)) if value else None


class ProgressDatabase:
    """SQLite store implementing the progress read interface and its writes."""

    def __init__(self, db_path: str = "data/attune.db"):
        """Initialize database."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Create database tables if they don't exist."""
        with self._connect() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"Database initialized at {self.db_path}")

    # Intentions

    def save_intention(self, intention: Intention):
        """Insert or replace an intention."""
        if not intention.title.strip():
            raise ValueError("Intention title must not be empty")
        if intention.target_value < 0:
            raise ValueError("Intention target must not be negative")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO intentions
                    (id, title, target_value, unit, timeframe, is_active, category, created_at, aliases)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    intention.id,
                    intention.title,
                    intention.target_value,
                    intention.unit,
                    intention.timeframe,
                    int(intention.is_active),
                    intention.category,
                    _ts(intention.created_at),
                    json.dumps(list(intention.aliases)),
                ),
            )
        logger.info(f"Intention saved: {intention.title} ({intention.id})")

    def load_intention(self, intention_id: str) -> Optional[Intention]:
        intentions = self.load_intentions([intention_id])
        return intentions[0] if intentions else None

    def load_intentions(self, ids: Sequence[str]) -> list[Intention]:
        """Load intentions in the order of `ids`, skipping unknown ids."""
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM intentions WHERE id IN ({placeholders})", list(ids)
            ).fetchall()

        by_id = {row["id"]: self._row_to_intention(row) for row in rows}
        return [by_id[intention_id] for intention_id in ids if intention_id in by_id]

    def _row_to_intention(self, row: sqlite3.Row) -> Intention:
        return Intention(
            id=row["id"],
            title=row["title"],
            target_value=row["target_value"],
            unit=row["unit"],
            timeframe=row["timeframe"],
            is_active=bool(row["is_active"]),
            category=row["category"],
            created_at=_dt(row["created_at"]),
            aliases=tuple(json.loads(row["aliases"] or "[]")),
        )

    # Intention sets

    def save_intention_set(self, intention_set: IntentionSet):
        """Insert or replace an intention set."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO intention_sets (id, started_at, ended_at, intention_ids)
                VALUES (?, ?, ?, ?)
                """,
                (
                    intention_set.id,
                    _ts(intention_set.started_at),
                    _ts(intention_set.ended_at),
                    json.dumps(list(intention_set.intention_ids)),
                ),
            )
        logger.info(
            f"IntentionSet saved: {intention_set.id} "
            f"({len(intention_set.intention_ids)} intentions)"
        )

    def load_all_intention_sets(self) -> list[IntentionSet]:
        """All intention sets, newest first."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM intention_sets").fetchall()

        sets = [
            IntentionSet(
                id=row["id"],
                started_at=_dt(row["started_at"]),
                ended_at=_dt(row["ended_at"]),
                intention_ids=tuple(json.loads(row["intention_ids"])),
            )
            for row in rows
        ]
        return sorted(sets, key=lambda s: s.started_at, reverse=True)

    def load_current_intention_set(self) -> Optional[IntentionSet]:
        """Latest set that has not ended."""
        for intention_set in self.load_all_intention_sets():
            if intention_set.ended_at is None:
                return intention_set
        return None

    def start_new_intention_set(
        self, intention_ids: Sequence[str], now: Optional[datetime] = None
    ) -> IntentionSet:
        """
        End the current set (if any) and start a new one.

        Args:
            intention_ids: Intentions tracked by the new set
            now: Start time (defaults to current local time)

        Returns:
            The new current set
        """
        now = calculator.as_local(now) if now else datetime.now().astimezone()

        current = self.load_current_intention_set()
        if current:
            self.save_intention_set(
                IntentionSet(
                    id=current.id,
                    started_at=current.started_at,
                    ended_at=now,
                    intention_ids=current.intention_ids,
                )
            )

        new_set = IntentionSet(id=new_id(), started_at=now, intention_ids=tuple(intention_ids))
        self.save_intention_set(new_set)
        return new_set

    # Progress entries

    def add_progress_entry(self, entry: ProgressEntry):
        """Insert a progress entry. Entries are never updated."""
        if entry.update_type not in (INCREMENT, TOTAL):
            raise ValueError(f"Unknown update type: {entry.update_type}")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO progress_entries
                    (id, intention_id, intention_set_id, date_key, amount, unit,
                     update_type, created_at, evidence, source_check_in_id, confidence)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.intention_id,
                    entry.intention_set_id,
                    entry.date_key,
                    entry.amount,
                    entry.unit,
                    entry.update_type,
                    _ts(entry.created_at),
                    entry.evidence,
                    entry.source_check_in_id,
                    entry.confidence,
                ),
            )
        logger.info(
            f"ProgressEntry saved: {entry.update_type} {entry.amount:g} {entry.unit} "
            f"intention={entry.intention_id} date={entry.date_key}"
        )

    def load_entries(self, date_key: str, intention_set_id: str) -> list[ProgressEntry]:
        return self._load_entries(
            "WHERE date_key = ? AND intention_set_id = ?", (date_key, intention_set_id)
        )

    def load_all_progress_entries(self) -> list[ProgressEntry]:
        return self._load_entries("", ())

    def _load_entries(self, where: str, params: tuple) -> list[ProgressEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM progress_entries {where} ORDER BY rowid", params
            ).fetchall()

        return [
            ProgressEntry(
                id=row["id"],
                intention_id=row["intention_id"],
                intention_set_id=row["intention_set_id"],
                date_key=row["date_key"],
                amount=row["amount"],
                unit=row["unit"],
                update_type=row["update_type"],
                created_at=_dt(row["created_at"]),
                evidence=row["evidence"],
                source_check_in_id=row["source_check_in_id"],
                confidence=row["confidence"],
            )
            for row in rows
        ]

    # Check-ins

    def add_check_in(self, check_in: CheckIn):
        """Insert a check-in, bucketed by its local creation day."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO check_ins
                    (id, transcript, created_at, date_key, intention_set_id, audio_file_name)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    check_in.id,
                    check_in.transcript,
                    _ts(check_in.created_at),
                    calculator.date_key(check_in.created_at),
                    check_in.intention_set_id,
                    check_in.audio_file_name,
                ),
            )
        logger.info(f"CheckIn saved: {check_in.id} ({len(check_in.transcript)} chars)")

    def load_check_ins(self, intention_set_id: str, date_key: str) -> list[CheckIn]:
        return self._load_check_ins(
            "WHERE intention_set_id = ? AND date_key = ?", (intention_set_id, date_key)
        )

    def load_all_check_ins(self) -> list[CheckIn]:
        return self._load_check_ins("", ())

    def _load_check_ins(self, where: str, params: tuple) -> list[CheckIn]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM check_ins {where} ORDER BY rowid", params
            ).fetchall()

        check_ins = [
            CheckIn(
                id=row["id"],
                transcript=row["transcript"],
                created_at=_dt(row["created_at"]),
                intention_set_id=row["intention_set_id"],
                audio_file_name=row["audio_file_name"],
            )
            for row in rows
        ]
        return sorted(check_ins, key=lambda c: c.created_at)

    # Overrides

    def set_override(self, override: ManualProgressOverride):
        """Set the override for (date, intention). Last write wins."""
        if not override.intention_id:
            raise ValueError("Override requires an intention id")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO progress_overrides
                    (date_key, intention_id, amount, unit, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    override.date_key,
                    override.intention_id,
                    override.amount,
                    override.unit,
                    _ts(override.updated_at),
                ),
            )
        logger.info(
            f"Override saved dateKey={override.date_key} "
            f"intentionId={override.intention_id} amount={override.amount:g}"
        )

    def clear_override(self, date_key: str, intention_id: str) -> bool:
        """Remove an override. Returns True if one existed."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM progress_overrides WHERE date_key = ? AND intention_id = ?",
                (date_key, intention_id),
            )
            removed = cursor.rowcount > 0
        logger.info(f"Override cleared dateKey={date_key} intentionId={intention_id}")
        return removed

    def load_override(self, date_key: str, intention_id: str) -> Optional[ManualProgressOverride]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM progress_overrides WHERE date_key = ? AND intention_id = ?",
                (date_key, intention_id),
            ).fetchone()

        if not row:
            return None

        return ManualProgressOverride(
            date_key=row["date_key"],
            intention_id=row["intention_id"],
            amount=row["amount"],
            unit=row["unit"],
            updated_at=_dt(row["updated_at"]),
        )

    def load_overrides_for_date(self, date_key: str) -> dict[str, float]:
        """Override amount by intention id for one day."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT intention_id, amount FROM progress_overrides WHERE date_key = ?",
                (date_key,),
            ).fetchall()
        return {row["intention_id"]: row["amount"] for row in rows}

    # Mood

    def save_daily_mood(self, mood: DailyMood):
        """Insert or replace the mood for a day."""
        if mood.mood_score is not None and not 0 <= mood.mood_score <= 10:
            raise ValueError("Mood score must be between 0 and 10")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO daily_moods
                    (date_key, mood_label, mood_score, source_check_in_id,
                     is_manual_override, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    mood.date_key,
                    mood.mood_label,
                    mood.mood_score,
                    mood.source_check_in_id,
                    int(mood.is_manual_override),
                    _ts(mood.updated_at),
                ),
            )
        logger.info(f"DailyMood saved: {mood.date_key} label={mood.mood_label} score={mood.mood_score}")

    def load_daily_mood(self, date_key: str) -> Optional[DailyMood]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM daily_moods WHERE date_key = ?", (date_key,)
            ).fetchone()

        if not row:
            return None

        return DailyMood(
            date_key=row["date_key"],
            mood_label=row["mood_label"],
            mood_score=row["mood_score"],
            source_check_in_id=row["source_check_in_id"],
            is_manual_override=bool(row["is_manual_override"]),
            updated_at=_dt(row["updated_at"]),
        )

    def save_mood_from_check_in(
        self,
        date_key: str,
        mood_label: Optional[str],
        mood_score: Optional[int],
        source_check_in_id: str,
    ) -> Optional[DailyMood]:
        """
        Store a mood extracted from a check-in.

        A mood the user set manually for the day is kept.

        Returns:
            The saved mood, or None if a manual mood was kept
        """
        existing = self.load_daily_mood(date_key)
        if existing and existing.is_manual_override:
            logger.info(f"DailyMood kept manual override for {date_key}")
            return None

        mood = DailyMood(
            date_key=date_key,
            mood_label=mood_label,
            mood_score=mood_score,
            source_check_in_id=source_check_in_id,
        )
        self.save_daily_mood(mood)
        return mood
