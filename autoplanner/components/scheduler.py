#autoplanner/components/scheduler.py
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from autoplanner.components import models, schemas
from autoplanner.components.allocator import Allocation, allocate
from autoplanner.components.availability import compute_availability
from autoplanner.components.observability import get_logger
from autoplanner.components.repositories import (
    PreferenceStore,
    RoutineRepository,
    TaskRepository,
    TimeSlotRepository,
    SqlPreferenceStore,
    SqlRoutineRepository,
    SqlTaskRepository,
    SqlTimeSlotRepository,
)

logger = get_logger(__name__)


def to_time_slots(user_id: int, allocation: Allocation) -> List[models.TimeSlot]:
    return [
        models.TimeSlot(
            user_id=user_id,
            task_id=p.task_id,
            start_time=p.start,
            end_time=p.end,
            status=models.SlotStatus.SCHEDULED,
            is_fixed=False,
        )
        for p in allocation.placements
    ]


def recalculate_schedule(
    user_id: int,
    tasks: TaskRepository,
    routines: RoutineRepository,
    time_slots: TimeSlotRepository,
    preferences: PreferenceStore,
    now: datetime = None,
) -> schemas.RecalculationResult:
    """
    Rebuild a user's automatic schedule from scratch:
      load -> clear -> compute availability -> allocate -> persist.

    Safe to run again after a failure: anything it placed earlier is still
    `scheduled` and gets cleared on the next run. Store failures propagate
    as PersistenceError; tasks that cannot be placed come back as conflicts.

    Optional `now` can be provided (for testing); defaults to the current local time.
    """
    if now is None:
        now = datetime.now()

    # LOAD
    preference = preferences.get(user_id) or preferences.create_default(user_id)
    pending = tasks.list_pending(user_id)
    blocks = routines.list_all(user_id)
    committed = time_slots.list_committed(user_id, now)
    mode = models.SchedulingMode(preference.scheduling_mode)
    logger.info(
        "Recalculating schedule",
        user_id=user_id,
        mode=mode.value,
        pending_tasks=len(pending),
        routines=len(blocks),
        committed_slots=len(committed),
    )

    # CLEAR
    cleared = time_slots.delete_future_scheduled(user_id, now)

    # COMPUTE_AVAILABILITY
    pool = compute_availability(preference, blocks, committed, pending, now)

    # ALLOCATE
    allocation = allocate(mode, pool, pending, preference, now)

    # PERSIST
    created = time_slots.create_many(to_time_slots(user_id, allocation))

    logger.info(
        "Schedule recalculated",
        user_id=user_id,
        cleared=cleared,
        placed=len(created),
        conflicts=len(allocation.conflicts),
    )
    return schemas.RecalculationResult(
        success=True,
        conflicts=[
            schemas.ConflictOut(task_id=c.task_id, message=c.message)
            for c in allocation.conflicts
        ],
    )


def recalculate(db: Session, user_id: int, now: datetime = None) -> schemas.RecalculationResult:
    """Recalculate a user's schedule against the SQL store behind `db`."""
    return recalculate_schedule(
        user_id,
        SqlTaskRepository(db),
        SqlRoutineRepository(db),
        SqlTimeSlotRepository(db),
        SqlPreferenceStore(db),
        now=now,
    )
