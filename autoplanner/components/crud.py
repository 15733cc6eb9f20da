#autoplanner/components/crud.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from autoplanner.components import models, schemas
from autoplanner.components.repositories import SqlPreferenceStore


def get_task(db: Session, user_id: int, task_id: int):
    return db.query(models.Task).filter(
        models.Task.user_id == user_id,
        models.Task.id == task_id,
    ).first()


def get_tasks(db: Session, user_id: int, skip: int = 0, limit: int = 100):
    return (
        db.query(models.Task)
        .filter(models.Task.user_id == user_id)
        .order_by(models.Task.deadline, models.Task.id)
        .offset(skip)
        .limit(limit)
        .all()
    )


def check_dependencies(db: Session, user_id: int, dependency_ids: List[int], task_id: int = None):
    """
    Reject dependencies on the task itself or on tasks the user does not own.
    Longer cycles are allowed here; the scheduler reports them as conflicts.
    """
    if task_id is not None and task_id in dependency_ids:
        raise ValueError('A task cannot depend on itself')
    if not dependency_ids:
        return
    found = {
        row.id for row in db.query(models.Task.id).filter(
            models.Task.user_id == user_id,
            models.Task.id.in_(dependency_ids),
        )
    }
    missing = [d for d in dependency_ids if d not in found]
    if missing:
        raise ValueError(f'Unknown dependency task ids: {missing}')


def create_task(db: Session, user_id: int, task: schemas.TaskCreate):
    check_dependencies(db, user_id, task.dependency_ids)
    db_task = models.Task(
        user_id=user_id,
        title=task.title,
        description=task.description,
        deadline=task.deadline,
        priority=task.priority,
        status=task.status,
        min_work_session=task.min_work_session,
        estimate=task.estimate,
        tags=list(task.tags),
        dependency_ids=list(dict.fromkeys(task.dependency_ids)),
    )
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    return db_task


def update_task(db: Session, db_task: models.Task, updates: schemas.TaskUpdate):
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)
    if 'dependency_ids' in changes:
        check_dependencies(db, db_task.user_id, changes['dependency_ids'], task_id=db_task.id)
        changes['dependency_ids'] = list(dict.fromkeys(changes['dependency_ids']))
    for var, value in changes.items():
        setattr(db_task, var, value)
    db.commit()
    db.refresh(db_task)
    return db_task


def delete_task(db: Session, db_task: models.Task):
    # drop the deleted id from other tasks' dependency lists
    dependents = db.query(models.Task).filter(
        models.Task.user_id == db_task.user_id,
        models.Task.id != db_task.id,
    ).all()
    for other in dependents:
        if db_task.id in (other.dependency_ids or []):
            other.dependency_ids = [d for d in other.dependency_ids if d != db_task.id]
    # planned sessions go with the task; worked and fixed slots stay, unlinked
    db.expire(db_task, ["time_slots"])
    for slot in list(db_task.time_slots):
        if slot.status == models.SlotStatus.SCHEDULED and not slot.is_fixed:
            db.delete(slot)
    db.delete(db_task)
    db.commit()


def get_routines(db: Session, user_id: int):
    return (
        db.query(models.RoutineBlock)
        .filter(models.RoutineBlock.user_id == user_id)
        .order_by(models.RoutineBlock.id)
        .all()
    )


def get_routine(db: Session, user_id: int, routine_id: int):
    return db.query(models.RoutineBlock).filter(
        models.RoutineBlock.user_id == user_id,
        models.RoutineBlock.id == routine_id,
    ).first()


def create_routine(db: Session, user_id: int, routine: schemas.RoutineCreate):
    db_routine = models.RoutineBlock(
        user_id=user_id,
        title=routine.title,
        start_time=routine.start_time,
        end_time=routine.end_time,
        days_of_week=list(routine.days_of_week),
        is_recurring=routine.is_recurring,
        specific_date=routine.specific_date,
        category=routine.category,
    )
    db.add(db_routine)
    db.commit()
    db.refresh(db_routine)
    return db_routine


def update_routine(db: Session, db_routine: models.RoutineBlock, updates: schemas.RoutineUpdate):
    changes = updates.model_dump(exclude_unset=True)
    merged = schemas.Routine.model_validate(db_routine).model_dump()
    merged.update(changes)
    # the merged block has to be valid as a whole, e.g. one-off needs a date
    valid = schemas.RoutineCreate.model_validate(merged)
    for var in changes:
        setattr(db_routine, var, getattr(valid, var))
    db.commit()
    db.refresh(db_routine)
    return db_routine


def delete_routine(db: Session, db_routine: models.RoutineBlock):
    db.delete(db_routine)
    db.commit()


def get_preference(db: Session, user_id: int) -> models.UserPreference:
    return SqlPreferenceStore(db).get_or_create(user_id)


def update_preference(db: Session, user_id: int, updates: schemas.PreferenceUpdate) -> models.UserPreference:
    pref = get_preference(db, user_id)
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)
    start = changes.get('work_start', pref.work_start)
    end = changes.get('work_end', pref.work_end)
    schemas.check_window(start, end, 'Working hours')
    for var, value in changes.items():
        setattr(pref, var, value)
    db.commit()
    db.refresh(pref)
    return pref


def get_slots(db: Session, user_id: int, start: datetime, end: datetime):
    return (
        db.query(models.TimeSlot)
        .filter(
            models.TimeSlot.user_id == user_id,
            models.TimeSlot.start_time >= start,
            models.TimeSlot.end_time <= end,
        )
        .order_by(models.TimeSlot.start_time)
        .all()
    )


def get_slot(db: Session, user_id: int, slot_id: int) -> Optional[models.TimeSlot]:
    return db.query(models.TimeSlot).filter(
        models.TimeSlot.user_id == user_id,
        models.TimeSlot.id == slot_id,
    ).first()


def set_slot_status(db: Session, db_slot: models.TimeSlot, status: models.SlotStatus):
    db_slot.status = status
    db.commit()
    db.refresh(db_slot)
    return db_slot
