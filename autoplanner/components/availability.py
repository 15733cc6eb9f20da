#autoplanner/components/availability.py
import os
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Sequence

from autoplanner.components.intervals import (
    Interval,
    IntervalPool,
    MINUTES_PER_DAY,
    minutes_of_day,
    subtract,
)
from autoplanner.components.observability import get_logger

logger = get_logger(__name__)

DEFAULT_HORIZON_DAYS = int(os.getenv('SCHEDULE_DEFAULT_HORIZON_DAYS', '14'))


def day_of_week(day: date) -> int:
    """Weekday number with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def ceil_minutes(moment: datetime) -> int:
    """Minutes since midnight, rounded up when there are leftover seconds."""
    minutes = minutes_of_day(moment)
    if moment.second or moment.microsecond:
        minutes += 1
    return minutes


def planning_horizon(tasks: Sequence, now: datetime) -> date:
    """
    Last day to compute free time for: the furthest pending deadline,
    or DEFAULT_HORIZON_DAYS out when nothing is pending.
    """
    if not tasks:
        return (now + timedelta(days=DEFAULT_HORIZON_DAYS)).date()
    latest = max(t.deadline for t in tasks)
    return max(latest, now).date()


def routine_applies(routine, day: date) -> bool:
    if routine.is_recurring:
        return day_of_week(day) in (routine.days_of_week or [])
    return routine.specific_date == day


def committed_range_on(slot, day: date):
    """
    The part of a committed slot that falls on `day`, as minutes since midnight,
    or None when the slot does not touch the day.
    """
    day_start = datetime.combine(day, time.min)
    day_end = day_start + timedelta(days=1)
    if slot.start_time >= day_end or slot.end_time <= day_start:
        return None
    start = minutes_of_day(slot.start_time) if slot.start_time >= day_start else 0
    end = ceil_minutes(slot.end_time) if slot.end_time < day_end else MINUTES_PER_DAY
    return start, end


def free_intervals_for_day(
    day: date,
    preference,
    routines: Iterable,
    committed_slots: Iterable,
    now: datetime = None,
) -> List[Interval]:
    """
    Free ranges of a single day: working hours minus routine blocks minus
    committed slots, without anything shorter than the break duration.
    Non-work days have no free time at all.
    """
    if day_of_week(day) not in (preference.work_days or []):
        return []

    ranges = [Interval(day, minutes_of_day(preference.work_start), minutes_of_day(preference.work_end))]

    for routine in routines:
        if routine_applies(routine, day):
            ranges = subtract(ranges, minutes_of_day(routine.start_time), minutes_of_day(routine.end_time))

    for slot in committed_slots:
        blocked = committed_range_on(slot, day)
        if blocked is not None:
            ranges = subtract(ranges, *blocked)

    # nothing may start before the moment of recalculation
    if now is not None and day == now.date():
        ranges = subtract(ranges, 0, ceil_minutes(now))

    return [r for r in ranges if r.length >= preference.break_duration]


def compute_availability(
    preference,
    routines: Sequence,
    committed_slots: Sequence,
    tasks: Sequence,
    now: datetime = None,
) -> IntervalPool:
    """
    Build the free-interval pool for every day from today through the planning horizon.
    """
    if now is None:
        now = datetime.now()

    last_day = planning_horizon(tasks, now)
    intervals: List[Interval] = []
    day = now.date()
    while day <= last_day:
        intervals.extend(free_intervals_for_day(day, preference, routines, committed_slots, now))
        day += timedelta(days=1)

    logger.debug(
        "Computed availability",
        first_day=now.date().isoformat(),
        last_day=last_day.isoformat(),
        intervals=len(intervals),
        free_minutes=sum(i.length for i in intervals),
    )
    return IntervalPool(intervals)


def work_days_between(start: datetime, end: datetime, work_days: Iterable[int]) -> int:
    """
    Work days from start's date through end's date inclusive, never less than 1.
    """
    allowed = set(work_days or [])
    count = 0
    day = start.date()
    last = end.date()
    while day <= last:
        if day_of_week(day) in allowed:
            count += 1
        day += timedelta(days=1)
    return max(1, count)
