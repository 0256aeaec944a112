"""Record a check-in and the progress it reports."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from attune.intentions.extractor import CheckInExtractor
from attune.intentions.fallback import parse_fallback_updates
from attune.intentions.models import CheckInUpdate
from attune.progress import calculator
from attune.progress.models import CheckIn, DailyMood, ProgressEntry, new_id
from attune.storage.database import ProgressDatabase

logger = logging.getLogger(__name__)


@dataclass
class CheckInResult:
    """What a recorded check-in wrote to the store."""
    check_in: CheckIn
    date_key: str
    entries: list[ProgressEntry] = field(default_factory=list)
    mood: Optional[DailyMood] = None
    used_fallback: bool = False


class CheckInRecorder:
    """Stores a check-in, extracts its updates and mood, and saves them."""

    def __init__(self, db: ProgressDatabase, extractor: CheckInExtractor):
        self.db = db
        self.extractor = extractor

    def record(
        self,
        transcript: str,
        audio_file_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CheckInResult:
        """
        Record a check-in against the current intention set.

        Extracted updates become progress entries dated to the check-in's
        day. When extraction finds no updates, keyword matching is tried
        instead. An extracted mood is saved unless the user set the day's
        mood by hand.

        Args:
            transcript: Transcribed check-in text
            audio_file_name: Name of the recording, if kept
            now: Check-in time (defaults to current local time)

        Returns:
            The check-in and everything written for it
        """
        now = calculator.as_local(now) if now else datetime.now().astimezone()
        day_key = calculator.date_key(now)

        intention_set = self.db.load_current_intention_set()
        if intention_set is None:
            logger.info("No current intention set, starting an empty one")
            intention_set = self.db.start_new_intention_set([], now=now)

        check_in = CheckIn(
            id=new_id(),
            transcript=transcript,
            created_at=now,
            intention_set_id=intention_set.id,
            audio_file_name=audio_file_name,
        )
        self.db.add_check_in(check_in)

        intentions = [
            intention
            for intention in self.db.load_intentions(list(intention_set.intention_ids))
            if intention.is_active
        ]
        entries = self.db.load_entries(day_key, intention_set.id)
        overrides = self.db.load_overrides_for_date(day_key)
        todays_totals = {
            intention.id: calculator.total_for_intention(
                entries,
                day_key,
                intention.id,
                intention_set.id,
                override_amount=overrides.get(intention.id),
            )
            for intention in intentions
        }

        extraction = self.extractor.extract(transcript, intentions, todays_totals, check_in.id)

        updates = extraction.updates
        used_fallback = False
        if not updates:
            updates = parse_fallback_updates(transcript, intentions)
            used_fallback = bool(updates)

        result = CheckInResult(check_in=check_in, date_key=day_key, used_fallback=used_fallback)

        for update in updates:
            entry = self._to_entry(update, check_in, day_key)
            self.db.add_progress_entry(entry)
            result.entries.append(entry)

        if extraction.has_mood:
            result.mood = self.db.save_mood_from_check_in(
                day_key, extraction.mood_label, extraction.mood_score, check_in.id
            )

        logger.info(
            f"checkin_apply id={check_in.id} entries={len(result.entries)} "
            f"fallback={used_fallback} mood={result.mood is not None}"
        )
        return result

    def _to_entry(self, update: CheckInUpdate, check_in: CheckIn, day_key: str) -> ProgressEntry:
        return ProgressEntry(
            id=new_id(),
            intention_id=update.intention_id,
            intention_set_id=check_in.intention_set_id,
            date_key=day_key,
            amount=update.amount,
            unit=update.unit,
            update_type=update.update_type,
            created_at=check_in.created_at,
            evidence=update.evidence,
            source_check_in_id=check_in.id,
            confidence=update.confidence,
        )
