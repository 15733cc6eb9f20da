#autoplanner/components/intervals.py
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class Interval:
    """
    Half-open free range [start, end) on a single day, in minutes since midnight.
    """
    day: date
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def start_at(self) -> datetime:
        return at_minute(self.day, self.start)

    @property
    def end_at(self) -> datetime:
        return at_minute(self.day, self.end)

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end

    def overlaps(self, start: int, end: int) -> bool:
        # touching boundaries do not overlap
        return start < self.end and end > self.start


class Overlap(enum.Enum):
    DISJOINT = "disjoint"
    FULLY_COVERED = "fully_covered"
    TRIM_START = "trim_start"
    TRIM_END = "trim_end"
    SPLIT = "split"


def minutes_of_day(t) -> int:
    """Minutes since midnight for a time or datetime, seconds dropped."""
    return t.hour * 60 + t.minute


def at_minute(day: date, minutes: int) -> datetime:
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def classify(interval: Interval, block_start: int, block_end: int) -> Overlap:
    """
    Describe how the blocked range [block_start, block_end) cuts an interval.
    An empty or inverted block never cuts anything.
    """
    if block_end <= block_start:
        return Overlap.DISJOINT
    if not interval.overlaps(block_start, block_end):
        return Overlap.DISJOINT
    if block_start <= interval.start and block_end >= interval.end:
        return Overlap.FULLY_COVERED
    if block_start <= interval.start:
        return Overlap.TRIM_START
    if block_end >= interval.end:
        return Overlap.TRIM_END
    return Overlap.SPLIT


def cut(interval: Interval, block_start: int, block_end: int) -> List[Interval]:
    """Pieces of a single interval that survive the block, 0 to 2 of them."""
    overlap = classify(interval, block_start, block_end)
    if overlap is Overlap.DISJOINT:
        return [interval]
    if overlap is Overlap.FULLY_COVERED:
        return []
    if overlap is Overlap.TRIM_START:
        return [Interval(interval.day, block_end, interval.end)]
    if overlap is Overlap.TRIM_END:
        return [Interval(interval.day, interval.start, block_start)]
    return [
        Interval(interval.day, interval.start, block_start),
        Interval(interval.day, block_end, interval.end),
    ]


def subtract(free_ranges: Iterable[Interval], block_start: int, block_end: int) -> List[Interval]:
    """
    Remove [block_start, block_end) from every range, keeping order and date tags.
    Apply several blocks one call at a time; each may land inside a piece
    produced by an earlier one.
    """
    result: List[Interval] = []
    for interval in free_ranges:
        result.extend(cut(interval, block_start, block_end))
    return result


class IntervalPool:
    """
    The free time of one recalculation run, ordered by day then start.

    Owned by a single run: allocators take it, consume from it as sessions
    are placed, and nothing else holds a reference to it.
    """

    def __init__(self, intervals: Iterable[Interval] = ()):
        self._intervals: List[Interval] = sorted(intervals, key=lambda i: (i.day, i.start))

    def __iter__(self):
        return iter(list(self._intervals))

    def __len__(self) -> int:
        return len(self._intervals)

    def snapshot(self) -> List[Interval]:
        return list(self._intervals)

    def consume(self, day: date, start: int, end: int) -> None:
        """Take [start, end) out of that day's free time, leaving other days alone."""
        remaining: List[Interval] = []
        for interval in self._intervals:
            if interval.day != day:
                remaining.append(interval)
            else:
                remaining.extend(cut(interval, start, end))
        self._intervals = remaining
