"""Tests for keyword fallback updates."""

import pytest

from attune.intentions.fallback import FALLBACK_CONFIDENCE, parse_fallback_updates
from attune.progress.models import Intention

APP = Intention(id="app", title="Work on app", target_value=60, unit="minutes")
WORKOUT = Intention(id="gym", title="Workout", target_value=45, unit="minutes")
READ = Intention(id="read", title="Read", target_value=10, unit="pages")

ALL = [APP, WORKOUT, READ]


def amounts(updates):
    return {u.intention_id: u.amount for u in updates}


def test_all_three_phrases():
    updates = parse_fallback_updates(
        "Worked on my app for 40 minutes, went to the gym for 30 min and read 12 pages", ALL
    )

    assert amounts(updates) == {"app": 40, "gym": 30, "read": 12}
    assert all(u.update_type == "INCREMENT" for u in updates)
    assert all(u.confidence == FALLBACK_CONFIDENCE for u in updates)
    assert [u.unit for u in updates] == ["minutes", "minutes", "pages"]


def test_workout_without_minutes_uses_target():
    assert amounts(parse_fallback_updates("Did a workout this morning", ALL)) == {"gym": 45}


def test_workout_without_minutes_or_target_uses_default():
    workout = Intention(id="gym", title="Gym", target_value=0, unit="minutes")
    assert amounts(parse_fallback_updates("hit the gym", [workout])) == {"gym": 30}


@pytest.mark.parametrize("unit", ["sessions", "times", "workouts"])
def test_workout_session_units_count_one(unit):
    workout = Intention(id="gym", title="Lifting", target_value=3, unit=unit)
    updates = parse_fallback_updates("great lifting session", [workout])
    assert amounts(updates) == {"gym": 1}
    assert updates[0].unit == unit


def test_workout_other_unit_is_skipped():
    workout = Intention(id="run", title="Running", target_value=5, unit="miles")
    assert parse_fallback_updates("went running", [workout]) == []


def test_workout_matches_alias():
    cardio = Intention(id="c", title="Move", target_value=20, unit="minutes", aliases=("cardio",))
    assert amounts(parse_fallback_updates("did cardio for 25 minutes", [cardio])) == {"c": 25}


def test_read_requires_pages():
    assert parse_fallback_updates("I read a bit today", ALL) == []
    reading = Intention(id="r", title="Read", target_value=20, unit="minutes")
    assert parse_fallback_updates("read 10 pages", [reading]) == []


def test_no_matching_intention():
    assert parse_fallback_updates("went for a run for 20 min", [READ]) == []


def test_minutes_are_assigned_in_order():
    updates = parse_fallback_updates("worked on the app 25 min then a workout 35 minutes", ALL)
    assert amounts(updates) == {"app": 25, "gym": 35}
