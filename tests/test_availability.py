#tests/test_availability.py
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from autoplanner.components.availability import (
    DEFAULT_HORIZON_DAYS,
    compute_availability,
    day_of_week,
    free_intervals_for_day,
    planning_horizon,
    work_days_between,
)
from autoplanner.components.intervals import Interval
from autoplanner.components.models import SlotStatus

SUN = date(2025, 5, 18)
MON = date(2025, 5, 19)
TUE = date(2025, 5, 20)
SAT = date(2025, 5, 24)


@pytest.fixture
def preference():
    """Mon-Fri 9 AM - 5 PM, 15 minute break."""
    return SimpleNamespace(
        work_start=time(9, 0),
        work_end=time(17, 0),
        break_duration=15,
        buffer_time=10,
        work_days=[1, 2, 3, 4, 5],
    )


def routine(start, end, days=(1, 2, 3, 4, 5), specific_date=None):
    return SimpleNamespace(
        start_time=start,
        end_time=end,
        days_of_week=list(days),
        is_recurring=specific_date is None,
        specific_date=specific_date,
    )


def slot(start, end, status=SlotStatus.COMPLETED):
    return SimpleNamespace(start_time=start, end_time=end, status=status, is_fixed=False)


def task(deadline):
    return SimpleNamespace(deadline=deadline)


# --- Tests for day_of_week ---
def test_day_of_week_counts_from_sunday():
    assert day_of_week(SUN) == 0
    assert day_of_week(MON) == 1
    assert day_of_week(SAT) == 6


# --- Tests for free_intervals_for_day ---
def test_work_day_without_routines_is_the_working_window(preference):
    assert free_intervals_for_day(MON, preference, [], []) == [Interval(MON, 540, 1020)]


def test_non_work_day_has_no_free_time(preference):
    assert free_intervals_for_day(SAT, preference, [], []) == []


def test_lunch_routine_splits_weekday(preference):
    lunch = routine(time(12, 0), time(13, 0))
    free = free_intervals_for_day(TUE, preference, [lunch], [])
    assert free == [Interval(TUE, 540, 720), Interval(TUE, 780, 1020)]
    assert not any(i.start < 780 and i.end > 720 for i in free)


def test_recurring_routine_only_on_its_weekdays(preference):
    monday_class = routine(time(10, 0), time(11, 0), days=[1])
    assert free_intervals_for_day(TUE, preference, [monday_class], []) == [Interval(TUE, 540, 1020)]
    assert free_intervals_for_day(MON, preference, [monday_class], []) == [
        Interval(MON, 540, 600),
        Interval(MON, 660, 1020),
    ]


def test_one_off_routine_ignores_weekday(preference):
    # weekday list says Tuesday but a one-off block only matches its own date
    dentist = routine(time(14, 0), time(15, 0), days=[2], specific_date=TUE)
    next_tuesday = TUE + timedelta(days=7)
    assert free_intervals_for_day(TUE, preference, [dentist], []) == [
        Interval(TUE, 540, 840),
        Interval(TUE, 900, 1020),
    ]
    assert free_intervals_for_day(next_tuesday, preference, [dentist], []) == [
        Interval(next_tuesday, 540, 1020),
    ]


def test_committed_slots_are_subtracted(preference):
    done = slot(datetime(2025, 5, 19, 10, 0), datetime(2025, 5, 19, 11, 30))
    assert free_intervals_for_day(MON, preference, [], [done]) == [
        Interval(MON, 540, 600),
        Interval(MON, 690, 1020),
    ]


def test_committed_slot_over_midnight_blocks_both_days(preference):
    overnight = slot(datetime(2025, 5, 19, 16, 0), datetime(2025, 5, 20, 10, 0), SlotStatus.IN_PROGRESS)
    assert free_intervals_for_day(MON, preference, [], [overnight]) == [Interval(MON, 540, 960)]
    assert free_intervals_for_day(TUE, preference, [], [overnight]) == [Interval(TUE, 600, 1020)]


def test_remainders_shorter_than_break_are_dropped(preference):
    blocks = [routine(time(9, 10), time(12, 0)), routine(time(12, 20), time(17, 0))]
    # leaves 09:00-09:10 (too short) and 12:00-12:20 (long enough)
    assert free_intervals_for_day(MON, preference, blocks, []) == [Interval(MON, 720, 740)]


def test_today_is_trimmed_to_now(preference):
    now = datetime(2025, 5, 19, 10, 30, 30)
    assert free_intervals_for_day(MON, preference, [], [], now) == [Interval(MON, 631, 1020)]
    # other days are untouched
    assert free_intervals_for_day(TUE, preference, [], [], now) == [Interval(TUE, 540, 1020)]


# --- Tests for planning_horizon / compute_availability ---
def test_horizon_without_tasks_is_two_weeks():
    now = datetime(2025, 5, 19, 8, 0)
    assert planning_horizon([], now) == (now + timedelta(days=DEFAULT_HORIZON_DAYS)).date()


def test_horizon_is_furthest_deadline():
    now = datetime(2025, 5, 19, 8, 0)
    tasks = [task(datetime(2025, 5, 21, 12, 0)), task(datetime(2025, 5, 27, 9, 0))]
    assert planning_horizon(tasks, now) == date(2025, 5, 27)


def test_horizon_never_before_today():
    now = datetime(2025, 5, 19, 8, 0)
    assert planning_horizon([task(datetime(2025, 5, 10))], now) == MON


def test_compute_availability_covers_work_days_through_deadline(preference):
    now = datetime(2025, 5, 19, 8, 0)  # Monday
    pool = compute_availability(preference, [], [], [task(datetime(2025, 5, 26, 12, 0))], now)
    days = [i.day for i in pool]
    # Mon-Fri of this week plus the following Monday, no weekend
    assert days == [date(2025, 5, d) for d in (19, 20, 21, 22, 23, 26)]


def test_compute_availability_without_tasks_uses_default_horizon(preference):
    now = datetime(2025, 5, 19, 8, 0)
    pool = compute_availability(preference, [], [], [], now)
    assert pool.snapshot()[-1].day <= (now + timedelta(days=DEFAULT_HORIZON_DAYS)).date()
    assert len(pool) == 11  # work days from May 19 through June 2


def test_compute_availability_after_hours_skips_today(preference):
    now = datetime(2025, 5, 19, 18, 0)
    pool = compute_availability(preference, [], [], [task(datetime(2025, 5, 20, 17, 0))], now)
    assert pool.snapshot() == [Interval(TUE, 540, 1020)]


# --- Tests for work_days_between ---
def test_work_days_between_counts_inclusive():
    assert work_days_between(datetime(2025, 5, 19, 8, 0), datetime(2025, 5, 23, 17, 0), [1, 2, 3, 4, 5]) == 5


def test_work_days_between_is_at_least_one():
    assert work_days_between(datetime(2025, 5, 24, 8, 0), datetime(2025, 5, 25, 17, 0), [1, 2, 3, 4, 5]) == 1
    assert work_days_between(datetime(2025, 5, 24, 8, 0), datetime(2025, 5, 20, 17, 0), [1, 2, 3, 4, 5]) == 1
