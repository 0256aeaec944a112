"""Streak calculation and active intention set lookup."""

from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

from .calculator import (
    as_local,
    date_key,
    overall_percent_complete,
    start_of_day,
    total_for_intention,
)
from .models import CheckIn, Intention, IntentionSet, ProgressEntry

# A day counts toward the streak at 80% overall completion
COMPLETION_THRESHOLD = 0.8
MAX_DAYS_TO_CHECK = 30


def set_key(intention_set_id: str, day_key: str) -> str:
    """Grouping key for per-set, per-day lookups."""
    return f"{intention_set_id}|{day_key}"


def intention_set_active_on(
    day_key: str, sets: Sequence[IntentionSet]
) -> Optional[IntentionSet]:
    """
    Find the intention set that was active on a given day.

    A set is a candidate when it started on or before the day and ended
    after the day began (a set ended at exactly local midnight is not
    active that day). The latest-started candidate wins.

    Args:
        day_key: Day to resolve (YYYY-MM-DD)
        sets: All known intention sets, in any order

    Returns:
        Active set, or None if nothing was being tracked that day
    """
    day_start = start_of_day(day_key)
    if day_start is None:
        return None

    active = None
    for intention_set in sets:
        if date_key(intention_set.started_at) > day_key:
            continue
        if intention_set.ended_at is not None and as_local(intention_set.ended_at) <= day_start:
            continue
        if active is None or as_local(intention_set.started_at) >= as_local(active.started_at):
            active = intention_set
    return active


def compute_streak(
    all_intention_sets: Sequence[IntentionSet],
    intentions_by_set_id: Mapping[str, Sequence[Intention]],
    entries_by_set_and_date: Mapping[str, Sequence[ProgressEntry]],
    check_ins_by_set_and_date: Mapping[str, Sequence[CheckIn]],
    overrides_by_date: Optional[Mapping[str, Mapping[str, float]]] = None,
    today: Optional[date] = None,
) -> int:
    """
    Count consecutive qualifying days, walking backwards from today.

    A day qualifies when an intention set is active, the day has at least
    one check-in or progress entry for that set, and overall completion
    reaches COMPLETION_THRESHOLD.

    Returns:
        Streak length (0 if today does not qualify)
    """
    overrides_by_date = overrides_by_date or {}
    today = today or date.today()

    streak = 0
    for offset in range(MAX_DAYS_TO_CHECK):
        day_key = date_key(today - timedelta(days=offset))

        active_set = intention_set_active_on(day_key, all_intention_sets)
        if active_set is None:
            break

        key = set_key(active_set.id, day_key)
        entries = entries_by_set_and_date.get(key, [])
        if not entries and not check_ins_by_set_and_date.get(key):
            break

        intentions = intentions_by_set_id.get(active_set.id, [])
        overrides = overrides_by_date.get(day_key, {})
        totals = {
            intention.id: total_for_intention(
                entries,
                day_key,
                intention.id,
                active_set.id,
                override_amount=overrides.get(intention.id),
            )
            for intention in intentions
        }

        if overall_percent_complete(intentions, totals) < COMPLETION_THRESHOLD:
            break

        streak += 1

    return streak
