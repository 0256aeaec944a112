"""Progress totals and percent-complete calculation.

All functions here are pure: they only read their arguments and never
mutate caller-owned lists or maps.

Total rule: a manual override wins; otherwise the latest TOTAL entry for
the day wins; otherwise INCREMENT entries are summed.
"""

from datetime import date, datetime, time
from typing import Iterable, Mapping, Optional, Sequence, Union

from .models import INCREMENT, TOTAL, WEEKLY, Intention, ProgressEntry

DAYS_PER_WEEK = 7

DATE_KEY_FORMAT = "%Y-%m-%d"


def as_local(moment: datetime) -> datetime:
    """Timezone-aware local time. Naive values are taken to already be local."""
    return moment.astimezone()


def start_of_day(day_key: str) -> Optional[datetime]:
    """Local midnight at the start of a day key; None for malformed keys."""
    day = parse_date_key(day_key)
    if day is None:
        return None
    return datetime.combine(day, time.min).astimezone()


def date_key(moment: Union[datetime, date]) -> str:
    """
    Canonical YYYY-MM-DD bucket for a timestamp in the local timezone.

    Naive datetimes are taken to already be local time. This is the only
    day-bucketing function; entries, overrides and check-ins all use it.
    """
    if isinstance(moment, datetime):
        moment = as_local(moment)
    return moment.strftime(DATE_KEY_FORMAT)


def parse_date_key(key: str) -> Optional[date]:
    """Inverse of date_key; None for malformed keys."""
    try:
        return datetime.strptime(key, DATE_KEY_FORMAT).date()
    except (TypeError, ValueError):
        return None


def _matching(
    entries: Iterable[ProgressEntry],
    day_key: str,
    intention_id: str,
    intention_set_id: str,
) -> list[ProgressEntry]:
    return [
        entry
        for entry in entries
        if entry.date_key == day_key
        and entry.intention_id == intention_id
        and entry.intention_set_id == intention_set_id
    ]


def total_for_intention(
    entries: Iterable[ProgressEntry],
    day_key: str,
    intention_id: str,
    intention_set_id: str,
    override_amount: Optional[float] = None,
) -> float:
    """
    Total progress for an intention on a given day.

    Args:
        entries: Progress entries (may include other days/intentions)
        day_key: Day to compute (YYYY-MM-DD)
        intention_id: Intention to compute
        intention_set_id: Intention set the entries must belong to
        override_amount: Manual override; returned as-is when not None

    Returns:
        Override, latest TOTAL amount, or sum of INCREMENT amounts.
        May be negative; no clamping here.
    """
    if override_amount is not None:
        return override_amount

    filtered = _matching(entries, day_key, intention_id, intention_set_id)

    latest_total = None
    for entry in filtered:
        # >= so that equal timestamps resolve to the last one seen
        if entry.update_type == TOTAL and (
            latest_total is None
            or as_local(entry.created_at) >= as_local(latest_total.created_at)
        ):
            latest_total = entry

    if latest_total is not None:
        return latest_total.amount

    return sum(entry.amount for entry in filtered if entry.update_type == INCREMENT)


def cumulative_increment_amount_up_to(
    entries: Iterable[ProgressEntry],
    day_key: str,
    intention_id: str,
    intention_set_id: str,
    at_or_before: datetime,
) -> float:
    """
    Running INCREMENT total at the time of a specific entry.

    TOTAL entries are ignored. Used to show "N so far" next to each entry
    in a day's history.
    """
    return sum(
        entry.amount
        for entry in _matching(entries, day_key, intention_id, intention_set_id)
        if entry.update_type == INCREMENT and as_local(entry.created_at) <= as_local(at_or_before)
    )


def percent_complete(total: float, target_value: float, timeframe: str) -> float:
    """
    Fraction of today's target reached, clamped to [0, 1].

    Weekly intentions are measured against a daily share (target / 7).
    A target <= 0 always yields 0.
    """
    if timeframe and timeframe.lower() == WEEKLY:
        effective_target = target_value / DAYS_PER_WEEK
    else:
        effective_target = target_value

    if effective_target <= 0:
        return 0.0

    return min(1.0, max(0.0, total / effective_target))


def overall_percent_complete(
    intentions: Sequence[Intention],
    totals_by_intention_id: Mapping[str, float],
) -> float:
    """
    Unweighted average of per-intention percent complete.

    Intentions missing from the totals map count as zero progress.
    """
    if not intentions:
        return 0.0

    percents = [
        percent_complete(
            totals_by_intention_id.get(intention.id, 0.0),
            intention.target_value,
            intention.timeframe,
        )
        for intention in intentions
    ]
    return sum(percents) / len(percents)
