"""Tests for progress totals and percent-complete."""

import itertools
from datetime import date, datetime, timedelta, timezone

import pytest

from attune.progress.calculator import (
    as_local,
    cumulative_increment_amount_up_to,
    date_key,
    overall_percent_complete,
    parse_date_key,
    percent_complete,
    start_of_day,
    total_for_intention,
)
from attune.progress.models import INCREMENT, TOTAL, Intention, ProgressEntry

DAY = "2026-03-10"
T0 = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)

_ids = itertools.count()


def entry(amount, update_type=INCREMENT, minutes=0, day=DAY, intention_id="i1", set_id="s1"):
    return ProgressEntry(
        id=f"e{next(_ids)}",
        intention_id=intention_id,
        intention_set_id=set_id,
        date_key=day,
        amount=amount,
        unit="pages",
        update_type=update_type,
        created_at=T0 + timedelta(minutes=minutes),
    )


def intention(intention_id, target, timeframe="daily"):
    return Intention(id=intention_id, title=intention_id, target_value=target, unit="times", timeframe=timeframe)


# ---- total_for_intention ----


def test_increments_are_summed():
    entries = [entry(10, minutes=1), entry(15, minutes=2)]
    assert total_for_intention(entries, DAY, "i1", "s1") == 25


def test_override_replaces_total():
    entries = [entry(10, minutes=1), entry(15, minutes=2)]
    assert total_for_intention(entries, DAY, "i1", "s1", override_amount=5) == 5


def test_zero_override_still_wins():
    assert total_for_intention([entry(10)], DAY, "i1", "s1", override_amount=0) == 0


def test_latest_total_wins_over_increments():
    entries = [
        entry(3, minutes=1),
        entry(40, TOTAL, minutes=2),
        entry(7, minutes=3),
        entry(12, TOTAL, minutes=5),
        entry(30, TOTAL, minutes=4),
    ]
    assert total_for_intention(entries, DAY, "i1", "s1") == 12


def test_total_ties_resolve_to_last_seen():
    entries = [entry(1, TOTAL, minutes=1), entry(2, TOTAL, minutes=1)]
    assert total_for_intention(entries, DAY, "i1", "s1") == 2


def test_negative_corrections_can_make_total_negative():
    entries = [entry(2), entry(-5, minutes=1)]
    assert total_for_intention(entries, DAY, "i1", "s1") == -3


def test_filters_by_day_intention_and_set():
    entries = [
        entry(1),
        entry(100, day="2026-03-09"),
        entry(100, intention_id="i2"),
        entry(100, set_id="s2"),
        entry(100, TOTAL, set_id="s2"),
    ]
    assert total_for_intention(entries, DAY, "i1", "s1") == 1


def test_no_entries_is_zero():
    assert total_for_intention([], DAY, "i1", "s1") == 0


def test_does_not_mutate_input():
    entries = [entry(5, minutes=2), entry(1, TOTAL, minutes=1)]
    snapshot = list(entries)
    total_for_intention(entries, DAY, "i1", "s1")
    assert entries == snapshot


# ---- cumulative_increment_amount_up_to ----


def test_running_total_at_each_entry():
    entries = [entry(2, minutes=1), entry(3, minutes=2), entry(50, TOTAL, minutes=3), entry(4, minutes=4)]
    running = [
        cumulative_increment_amount_up_to(entries, DAY, "i1", "s1", e.created_at) for e in entries
    ]
    assert running == [2, 5, 5, 9]


def test_running_total_before_first_entry_is_zero():
    entries = [entry(2, minutes=10)]
    assert cumulative_increment_amount_up_to(entries, DAY, "i1", "s1", T0) == 0


# ---- percent_complete ----


def test_daily_percent():
    assert percent_complete(5, 10, "daily") == 0.5


def test_weekly_uses_daily_share():
    assert percent_complete(4, 20, "weekly") == 1.0
    assert percent_complete(1, 14, "weekly") == pytest.approx(0.5)


def test_timeframe_is_case_insensitive():
    assert percent_complete(1, 14, "Weekly") == pytest.approx(0.5)


def test_zero_target_is_zero():
    assert percent_complete(0, 0, "daily") == 0
    assert percent_complete(10, 0, "weekly") == 0


@pytest.mark.parametrize(
    "total, target, timeframe",
    [
        (-5, 10, "daily"),
        (500, 10, "daily"),
        (3, -10, "daily"),
        (-3, -10, "weekly"),
        (1e9, 1e-9, "weekly"),
        (0.5, 1, "monthly"),
    ],
)
def test_percent_is_always_in_unit_interval(total, target, timeframe):
    assert 0.0 <= percent_complete(total, target, timeframe) <= 1.0


def test_negative_total_clamps_to_zero():
    assert percent_complete(-5, 10, "daily") == 0


# ---- overall_percent_complete ----


def test_overall_empty_is_zero():
    assert overall_percent_complete([], {}) == 0


def test_overall_is_unweighted_average():
    intentions = [intention("a", 10), intention("b", 1000)]
    assert overall_percent_complete(intentions, {"a": 10, "b": 0}) == 0.5


def test_overall_missing_totals_count_as_zero():
    intentions = [intention("a", 4), intention("b", 4)]
    assert overall_percent_complete(intentions, {"a": 2}) == 0.25


def test_overall_mixes_timeframes():
    intentions = [intention("a", 7, "weekly"), intention("b", 2)]
    assert overall_percent_complete(intentions, {"a": 1, "b": 1}) == 0.75


# ---- date_key ----


def test_date_key_for_date():
    assert date_key(date(2026, 1, 5)) == "2026-01-05"


def test_date_key_naive_is_local():
    assert date_key(datetime(2026, 1, 5, 23, 59)) == "2026-01-05"


def test_date_key_aware_uses_local_calendar():
    local = datetime(2026, 1, 5, 23, 30).astimezone()
    assert date_key(local) == "2026-01-05"
    assert date_key(local.astimezone(timezone.utc)) == "2026-01-05"


def test_parse_date_key():
    assert parse_date_key("2026-02-28") == date(2026, 2, 28)
    assert parse_date_key("2026-02-30") is None
    assert parse_date_key("yesterday") is None


# ---- naive and aware timestamps ----


def local_entry(amount, created_at, update_type=TOTAL):
    return ProgressEntry(
        id=f"e{next(_ids)}",
        intention_id="i1",
        intention_set_id="s1",
        date_key=DAY,
        amount=amount,
        unit="pages",
        update_type=update_type,
        created_at=created_at,
    )


def test_latest_total_with_naive_and_aware_timestamps():
    naive_morning = local_entry(4, datetime(2026, 3, 10, 8, 0))
    aware_later = local_entry(9, datetime(2026, 3, 10, 9, 0).astimezone())

    assert total_for_intention([naive_morning, aware_later], DAY, "i1", "s1") == 9
    assert total_for_intention([aware_later, naive_morning], DAY, "i1", "s1") == 9


def test_running_total_with_naive_and_aware_timestamps():
    entries = [
        local_entry(2, datetime(2026, 3, 10, 8, 0), INCREMENT),
        local_entry(3, datetime(2026, 3, 10, 10, 0).astimezone(), INCREMENT),
    ]

    at_nine = datetime(2026, 3, 10, 9, 0).astimezone()
    assert cumulative_increment_amount_up_to(entries, DAY, "i1", "s1", at_nine) == 2
    assert cumulative_increment_amount_up_to(entries, DAY, "i1", "s1", datetime(2026, 3, 10, 11, 0)) == 5


def test_as_local_keeps_wall_time_of_naive_values():
    naive = datetime(2026, 3, 10, 8, 30)
    converted = as_local(naive)
    assert converted.tzinfo is not None
    assert (converted.hour, converted.minute) == (8, 30)
    assert as_local(T0) == T0


def test_start_of_day():
    midnight = start_of_day(DAY)
    assert midnight == datetime(2026, 3, 10).astimezone()
    assert midnight.tzinfo is not None
    assert start_of_day("not-a-day") is None
