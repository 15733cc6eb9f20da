#autoplanner/components/allocator.py
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple

from autoplanner.components.availability import ceil_minutes, work_days_between
from autoplanner.components.dependencies import DependencyGraph
from autoplanner.components.intervals import Interval, IntervalPool, at_minute
from autoplanner.components.models import DEFAULT_MIN_WORK_SESSION, Priority, SchedulingMode, TaskStatus
from autoplanner.components.observability import get_logger

logger = get_logger(__name__)

# (day, start minute) of a spot a session fits into
Spot = Tuple[date, int]


@dataclass(frozen=True)
class Placement:
    task_id: int
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Conflict:
    task_id: int
    message: str


@dataclass
class Allocation:
    placements: List[Placement] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)


def session_length(task) -> int:
    return task.min_work_session or DEFAULT_MIN_WORK_SESSION


def sessions_required(task) -> int:
    """
    One session per task unless it carries an estimate, in which case the
    estimate is split into sessions of the minimum length.
    """
    if not task.estimate:
        return 1
    return max(1, math.ceil(task.estimate / session_length(task)))


def priority_rank(task) -> int:
    return Priority(task.priority).rank


def deadline_then_priority(task):
    return task.deadline, priority_rank(task)


class Allocator:
    """
    Places task sessions into an interval pool it owns for the duration of one run.
    Subclasses decide the order and distribution.
    """

    def __init__(self, pool: IntervalPool, preference, now: datetime):
        self.pool = pool
        self.preference = preference
        self.now = now
        self.result = Allocation()
        self._placed: Dict[int, List[Placement]] = {}

    def allocate(self, tasks: Sequence) -> Allocation:
        raise NotImplementedError

    def _pending(self, tasks: Sequence) -> List:
        return [t for t in tasks if TaskStatus(t.status) != TaskStatus.COMPLETED]

    def _eligible(self, task, not_before: Optional[datetime] = None) -> List[Interval]:
        """Intervals starting before the deadline, and still open after not_before."""
        return [
            i for i in self.pool
            if i.start_at < task.deadline and (not_before is None or i.end_at > not_before)
        ]

    def _fitting_start(self, interval: Interval, task, duration: int,
                       not_before: Optional[datetime]) -> Optional[int]:
        start = interval.start
        if not_before is not None:
            if interval.day < not_before.date():
                return None
            if interval.day == not_before.date():
                start = max(start, ceil_minutes(not_before))
        if not interval.contains(start, start + duration):
            return None
        # the session has to be over strictly before the deadline
        if at_minute(interval.day, start + duration) >= task.deadline:
            return None
        return start

    def _first_fit(self, task, duration: int, not_before: Optional[datetime] = None,
                   day: Optional[date] = None) -> Optional[Spot]:
        for interval in self._eligible(task, not_before):
            if day is not None and interval.day != day:
                continue
            start = self._fitting_start(interval, task, duration, not_before)
            if start is not None:
                return interval.day, start
        return None

    def _place(self, task, spot: Spot, duration: int) -> Placement:
        day, start = spot
        placement = Placement(task.id, at_minute(day, start), at_minute(day, start + duration))
        self.pool.consume(day, start, start + duration)
        self.result.placements.append(placement)
        self._placed.setdefault(task.id, []).append(placement)
        logger.debug(
            "Placed session",
            task_id=task.id,
            start=placement.start.isoformat(),
            end=placement.end.isoformat(),
        )
        return placement

    def _conflict(self, task, message: str) -> None:
        self.result.conflicts.append(Conflict(task.id, message))
        logger.info("Scheduling conflict", task_id=task.id, reason=message)

    def _report(self, task, needed: int, placed: int) -> None:
        if placed == 0:
            self._conflict(task, f'Could not schedule task "{task.title}" before its deadline')
        elif placed < needed:
            self._conflict(
                task,
                f'Only scheduled {placed} of {needed} sessions for task "{task.title}" before its deadline',
            )


class FastAllocator(Allocator):
    """Earliest deadline first; each session goes into the first interval it fits."""

    def allocate(self, tasks: Sequence) -> Allocation:
        for task in sorted(self._pending(tasks), key=deadline_then_priority):
            duration = session_length(task)
            needed = sessions_required(task)
            placed = 0
            if self._eligible(task):
                while placed < needed:
                    spot = self._first_fit(task, duration)
                    if spot is None:
                        break
                    self._place(task, spot, duration)
                    placed += 1
            self._report(task, needed, placed)
        return self.result


class SpreadAllocator(Allocator):
    """
    Spreads sessions over the work days left before each deadline.

    Tasks with dependencies go first, in dependency order, and never start
    before their dependencies' sessions have ended. Everything else follows
    grouped by deadline date, high priority first within a group.
    """

    def allocate(self, tasks: Sequence) -> Allocation:
        pending = sorted(self._pending(tasks), key=lambda t: t.deadline)
        graph = DependencyGraph(pending)

        roots = [t.id for t in pending if t.dependency_ids]
        resolution = graph.resolve(roots)
        handled = set()
        for cycle in resolution.cycles:
            for task_id in cycle.task_ids:
                if task_id in handled:
                    continue
                handled.add(task_id)
                task = graph.tasks[task_id]
                self._conflict(task, f'Could not schedule task "{task.title}": {cycle.message}')

        for task_id in resolution.order:
            task = graph.tasks[task_id]
            not_before = self._dependencies_done_at(graph.dependencies_of(task_id))
            days = work_days_between(self.now, task.deadline, self.preference.work_days)
            self._spread(task, days, not_before)
            handled.add(task_id)

        groups: Dict[date, List] = {}
        for task in pending:
            if task.id not in handled:
                groups.setdefault(task.deadline.date(), []).append(task)

        for deadline_day, group in groups.items():
            group.sort(key=priority_rank)
            days = work_days_between(self.now, datetime.combine(deadline_day, datetime.min.time()),
                                     self.preference.work_days)
            for task in group:
                self._spread(task, days)

        return self.result

    def _dependencies_done_at(self, dependency_ids: List[int]) -> Optional[datetime]:
        ends = [p.end for dep_id in dependency_ids for p in self._placed.get(dep_id, [])]
        return max(ends) if ends else None

    def _spread(self, task, available_days: int, not_before: Optional[datetime] = None) -> None:
        duration = session_length(task)
        needed = sessions_required(task)
        placed = 0

        eligible = self._eligible(task, not_before)
        if eligible:
            per_day = math.ceil(needed / available_days)
            days = list(dict.fromkeys(i.day for i in eligible))
            for day in days:
                today = 0
                while placed < needed and today < per_day:
                    spot = self._first_fit(task, duration, not_before, day=day)
                    if spot is None:
                        break
                    self._place(task, spot, duration)
                    placed += 1
                    today += 1
                if placed >= needed:
                    break

            # distribution fell short, take whatever still fits
            while placed < needed:
                spot = self._first_fit(task, duration, not_before)
                if spot is None:
                    break
                self._place(task, spot, duration)
                placed += 1

        self._report(task, needed, placed)


ALLOCATORS = {
    SchedulingMode.FAST: FastAllocator,
    SchedulingMode.SPREAD: SpreadAllocator,
}


def allocate(mode, pool: IntervalPool, tasks: Sequence, preference, now: datetime) -> Allocation:
    allocator_cls = ALLOCATORS[SchedulingMode(mode)]
    return allocator_cls(pool, preference, now).allocate(tasks)
