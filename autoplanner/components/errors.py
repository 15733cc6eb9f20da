#autoplanner/components/errors.py
from typing import Any, List, Optional


class SchedulingError(Exception):
    """Base exception for the scheduling engine."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class PersistenceError(SchedulingError):
    """The store failed while loading, clearing or saving a schedule."""

    def __init__(self, step: str, detail: str):
        super().__init__(f"{step} failed: {detail}", details={"step": step})
        self.step = step
        self.detail = detail


class CycleDetected(SchedulingError):
    """Tasks whose dependencies loop back onto themselves.

    Handed back by the dependency resolver as a value, never raised
    by it, so one cycle cannot abort a whole recalculation.
    """

    def __init__(self, task_ids: List[int]):
        loop = list(task_ids) + list(task_ids[:1])
        super().__init__(
            "Dependency cycle between tasks " + " -> ".join(str(t) for t in loop),
            details={"task_ids": list(task_ids)},
        )
        self.task_ids = list(task_ids)
