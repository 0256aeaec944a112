"""Tests for active set lookup and streak calculation."""

from datetime import date, datetime, timedelta

from attune.progress.models import INCREMENT, CheckIn, Intention, IntentionSet, ProgressEntry
from attune.progress.streak import (
    COMPLETION_THRESHOLD,
    compute_streak,
    intention_set_active_on,
    set_key,
)

TODAY = date(2026, 3, 10)


def local(day, hour=9):
    return datetime(day.year, day.month, day.day, hour).astimezone()


def make_set(set_id, start_day, end_day=None, ids=("read",)):
    return IntentionSet(
        id=set_id,
        started_at=local(start_day, 8),
        ended_at=local(end_day, 20) if end_day else None,
        intention_ids=tuple(ids),
    )


# ---- intention_set_active_on ----


def test_no_sets_means_none():
    assert intention_set_active_on("2026-03-10", []) is None


def test_set_not_yet_started_is_ignored():
    sets = [make_set("future", date(2026, 3, 11))]
    assert intention_set_active_on("2026-03-10", sets) is None


def test_latest_started_set_wins():
    sets = [
        make_set("old", date(2026, 3, 1), end_day=date(2026, 3, 5)),
        make_set("new", date(2026, 3, 5)),
    ]
    assert intention_set_active_on("2026-03-04", sets).id == "old"
    assert intention_set_active_on("2026-03-05", sets).id == "new"
    assert intention_set_active_on("2026-03-10", sets).id == "new"


def test_order_of_sets_does_not_matter():
    sets = [make_set("new", date(2026, 3, 5)), make_set("old", date(2026, 3, 1), end_day=date(2026, 3, 5))]
    assert intention_set_active_on("2026-03-06", sets).id == "new"


def test_ended_set_leaves_gap():
    sets = [make_set("old", date(2026, 3, 1), end_day=date(2026, 3, 3))]
    assert intention_set_active_on("2026-03-03", sets).id == "old"
    assert intention_set_active_on("2026-03-04", sets) is None


def test_set_ended_at_midnight_is_not_active_that_day():
    ended = IntentionSet(
        id="old",
        started_at=local(date(2026, 3, 1), 8),
        ended_at=datetime(2026, 3, 4, 0, 0).astimezone(),
        intention_ids=("read",),
    )
    assert intention_set_active_on("2026-03-03", [ended]).id == "old"
    assert intention_set_active_on("2026-03-04", [ended]) is None


def test_set_ended_just_after_midnight_is_active_that_day():
    ended = IntentionSet(
        id="old",
        started_at=local(date(2026, 3, 1), 8),
        ended_at=datetime(2026, 3, 4, 0, 1).astimezone(),
        intention_ids=("read",),
    )
    assert intention_set_active_on("2026-03-04", [ended]).id == "old"


def test_naive_and_aware_sets_can_be_compared():
    sets = [
        IntentionSet(id="naive", started_at=datetime(2026, 3, 1, 8), intention_ids=("read",)),
        IntentionSet(id="aware", started_at=local(date(2026, 3, 5), 8), intention_ids=("read",)),
    ]
    assert intention_set_active_on("2026-03-04", sets).id == "naive"
    assert intention_set_active_on("2026-03-06", sets).id == "aware"
    assert intention_set_active_on("2026-03-06", list(reversed(sets))).id == "aware"


def test_malformed_day_key_has_no_set():
    assert intention_set_active_on("someday", [make_set("s1", date(2026, 3, 1))]) is None


# ---- compute_streak ----


READ = Intention(id="read", title="Read", target_value=10, unit="pages")


def entry(day, amount):
    return ProgressEntry(
        id=f"e-{day.isoformat()}",
        intention_id="read",
        intention_set_id="s1",
        date_key=day.isoformat(),
        amount=amount,
        unit="pages",
        update_type=INCREMENT,
        created_at=local(day, 12),
    )


def streak_for(amounts_by_offset, overrides_by_date=None, check_ins=None):
    sets = [make_set("s1", TODAY - timedelta(days=40))]
    entries = {}
    for offset, amount in amounts_by_offset.items():
        day = TODAY - timedelta(days=offset)
        entries[set_key("s1", day.isoformat())] = [entry(day, amount)]
    return compute_streak(
        all_intention_sets=sets,
        intentions_by_set_id={"s1": [READ]},
        entries_by_set_and_date=entries,
        check_ins_by_set_and_date=check_ins or {},
        overrides_by_date=overrides_by_date,
        today=TODAY,
    )


def test_consecutive_complete_days():
    assert streak_for({0: 10, 1: 9, 2: 8, 4: 10}) == 3


def test_today_below_threshold_is_zero():
    assert streak_for({0: 5, 1: 10}) == 0


def test_threshold_is_inclusive():
    assert COMPLETION_THRESHOLD == 0.8
    assert streak_for({0: 8}) == 1


def test_override_can_complete_a_day():
    overrides = {(TODAY - timedelta(days=1)).isoformat(): {"read": 10}}
    assert streak_for({0: 10, 1: 1}, overrides_by_date=overrides) == 2


def test_day_without_activity_breaks_streak():
    # an override alone is not activity
    overrides = {(TODAY - timedelta(days=1)).isoformat(): {"read": 10}}
    assert streak_for({0: 10}, overrides_by_date=overrides) == 1


def test_check_in_counts_as_activity():
    yesterday = TODAY - timedelta(days=1)
    check_in = CheckIn(id="c1", transcript="read ten", created_at=local(yesterday), intention_set_id="s1")
    overrides = {yesterday.isoformat(): {"read": 10}}
    check_ins = {set_key("s1", yesterday.isoformat()): [check_in]}
    assert streak_for({0: 10}, overrides_by_date=overrides, check_ins=check_ins) == 2


def test_streak_is_capped():
    assert streak_for({offset: 10 for offset in range(40)}) == 30


def test_no_active_set_is_zero():
    assert compute_streak([], {}, {}, {}, today=TODAY) == 0
