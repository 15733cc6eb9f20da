#tests/test_intervals.py
from datetime import date, datetime

import pytest

from autoplanner.components.intervals import (
    Interval,
    IntervalPool,
    Overlap,
    classify,
    cut,
    subtract,
)

MON = date(2025, 5, 19)
TUE = date(2025, 5, 20)

# 09:00 - 17:00
WORKDAY = Interval(MON, 540, 1020)


# --- Tests for classify ---
@pytest.mark.parametrize("block, expected", [
    ((400, 540), Overlap.DISJOINT),        # ends exactly where the range starts
    ((1020, 1100), Overlap.DISJOINT),      # starts exactly where the range ends
    ((500, 1100), Overlap.FULLY_COVERED),
    ((540, 1020), Overlap.FULLY_COVERED),
    ((500, 600), Overlap.TRIM_START),
    ((540, 600), Overlap.TRIM_START),
    ((960, 1100), Overlap.TRIM_END),
    ((960, 1020), Overlap.TRIM_END),
    ((720, 780), Overlap.SPLIT),
])
def test_classify_cases(block, expected):
    assert classify(WORKDAY, *block) is expected


def test_classify_empty_or_inverted_block_is_disjoint():
    assert classify(WORKDAY, 700, 700) is Overlap.DISJOINT
    assert classify(WORKDAY, 800, 700) is Overlap.DISJOINT


# --- Tests for cut / subtract ---
def test_cut_returns_surviving_pieces():
    assert cut(WORKDAY, 300, 400) == [WORKDAY]
    assert cut(WORKDAY, 500, 1100) == []
    assert cut(WORKDAY, 500, 600) == [Interval(MON, 600, 1020)]
    assert cut(WORKDAY, 960, 1100) == [Interval(MON, 540, 960)]
    assert cut(WORKDAY, 720, 780) == [Interval(MON, 540, 720), Interval(MON, 780, 1020)]


def test_subtract_lunch_block_splits_the_day():
    # 12:00-13:00 never survives as free time
    assert subtract([WORKDAY], 720, 780) == [
        Interval(MON, 540, 720),
        Interval(MON, 780, 1020),
    ]


def test_subtract_blocks_one_at_a_time_reach_split_pieces():
    ranges = subtract([WORKDAY], 720, 780)
    ranges = subtract(ranges, 600, 630)  # falls inside the first piece
    ranges = subtract(ranges, 900, 960)  # falls inside the second piece
    assert ranges == [
        Interval(MON, 540, 600),
        Interval(MON, 630, 720),
        Interval(MON, 780, 900),
        Interval(MON, 960, 1020),
    ]


def test_subtract_order_of_disjoint_blocks_does_not_matter():
    first = subtract(subtract([WORKDAY], 600, 630), 900, 960)
    second = subtract(subtract([WORKDAY], 900, 960), 600, 630)
    assert first == second


def test_subtract_keeps_date_tags():
    ranges = subtract([WORKDAY, Interval(TUE, 540, 1020)], 720, 780)
    assert [r.day for r in ranges] == [MON, MON, TUE, TUE]


def test_subtract_empty_input():
    assert subtract([], 0, 100) == []


# --- Tests for Interval helpers ---
def test_interval_datetimes_and_length():
    interval = Interval(MON, 570, 630)
    assert interval.length == 60
    assert interval.start_at == datetime(2025, 5, 19, 9, 30)
    assert interval.end_at == datetime(2025, 5, 19, 10, 30)


def test_interval_contains_and_overlaps():
    assert WORKDAY.contains(540, 600)
    assert not WORKDAY.contains(500, 600)
    assert WORKDAY.overlaps(1000, 1100)
    assert not WORKDAY.overlaps(1020, 1100)


# --- Tests for IntervalPool ---
def test_pool_sorts_by_day_then_start():
    pool = IntervalPool([Interval(TUE, 540, 600), Interval(MON, 780, 900), Interval(MON, 540, 600)])
    assert pool.snapshot() == [
        Interval(MON, 540, 600),
        Interval(MON, 780, 900),
        Interval(TUE, 540, 600),
    ]


def test_pool_consume_only_touches_that_day():
    pool = IntervalPool([Interval(MON, 540, 1020), Interval(TUE, 540, 1020)])
    pool.consume(MON, 540, 600)
    assert pool.snapshot() == [Interval(MON, 600, 1020), Interval(TUE, 540, 1020)]


def test_pool_consume_keeps_remainder_in_place():
    pool = IntervalPool([Interval(MON, 540, 1020), Interval(TUE, 540, 1020)])
    pool.consume(MON, 600, 630)
    # the leftover pieces stay ahead of Tuesday
    assert pool.snapshot() == [
        Interval(MON, 540, 600),
        Interval(MON, 630, 1020),
        Interval(TUE, 540, 1020),
    ]


def test_pool_can_be_consumed_while_iterating():
    pool = IntervalPool([Interval(MON, 540, 600), Interval(MON, 660, 720), Interval(TUE, 540, 600)])
    for interval in pool:
        pool.consume(interval.day, interval.start, interval.start + 30)
    assert pool.snapshot() == [
        Interval(MON, 570, 600),
        Interval(MON, 690, 720),
        Interval(TUE, 570, 600),
    ]
    assert len(pool) == 3
