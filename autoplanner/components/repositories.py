"""
Storage contracts the scheduling engine depends on, and their SQLAlchemy implementations.

The engine only ever talks to these four collaborators, so any store that
implements them can back a recalculation.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, time
from typing import List, Optional

from sqlalchemy import or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from autoplanner.components import models
from autoplanner.components.errors import PersistenceError
from autoplanner.components.observability import get_logger

logger = get_logger(__name__)

DEFAULT_WORK_START = time(9, 0)
DEFAULT_WORK_END = time(17, 0)
DEFAULT_BREAK_DURATION = 15
DEFAULT_BUFFER_TIME = 10
DEFAULT_WORK_DAYS = [1, 2, 3, 4, 5]


class TaskRepository(ABC):
    @abstractmethod
    def list_pending(self, user_id: int) -> List[models.Task]:
        """Tasks that are not completed, earliest deadline first."""


class RoutineRepository(ABC):
    @abstractmethod
    def list_all(self, user_id: int) -> List[models.RoutineBlock]:
        pass


class TimeSlotRepository(ABC):
    @abstractmethod
    def list_committed(self, user_id: int, now: datetime = None) -> List[models.TimeSlot]:
        """Slots a recalculation must leave alone and plan around."""

    @abstractmethod
    def delete_future_scheduled(self, user_id: int, now: datetime) -> int:
        pass

    @abstractmethod
    def create_many(self, slots: List[models.TimeSlot]) -> List[models.TimeSlot]:
        pass


class PreferenceStore(ABC):
    @abstractmethod
    def get(self, user_id: int) -> Optional[models.UserPreference]:
        pass

    @abstractmethod
    def create_default(self, user_id: int) -> models.UserPreference:
        pass


@contextmanager
def store_step(db: Session, step: str, user_id: int):
    """Turn store failures into PersistenceError after rolling the session back."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Store failure", step=step, user_id=user_id, error=str(e))
        raise PersistenceError(step, str(e)) from e


class SqlTaskRepository(TaskRepository):
    def __init__(self, db: Session):
        self.db = db

    def list_pending(self, user_id: int) -> List[models.Task]:
        with store_step(self.db, "load tasks", user_id):
            return (
                self.db.query(models.Task)
                .filter(
                    models.Task.user_id == user_id,
                    models.Task.status != models.TaskStatus.COMPLETED,
                )
                .order_by(models.Task.deadline, models.Task.id)
                .all()
            )


class SqlRoutineRepository(RoutineRepository):
    def __init__(self, db: Session):
        self.db = db

    def list_all(self, user_id: int) -> List[models.RoutineBlock]:
        with store_step(self.db, "load routines", user_id):
            return (
                self.db.query(models.RoutineBlock)
                .filter(models.RoutineBlock.user_id == user_id)
                .order_by(models.RoutineBlock.id)
                .all()
            )


class SqlTimeSlotRepository(TimeSlotRepository):
    def __init__(self, db: Session):
        self.db = db

    def list_committed(self, user_id: int, now: datetime = None) -> List[models.TimeSlot]:
        """
        Completed and in-progress slots, fixed slots, and (given `now`)
        scheduled slots that already started and so survive clearing.
        """
        kept = [
            models.TimeSlot.status.in_([models.SlotStatus.COMPLETED, models.SlotStatus.IN_PROGRESS]),
            models.TimeSlot.is_fixed.is_(True),
        ]
        if now is not None:
            kept.append(and_(
                models.TimeSlot.status == models.SlotStatus.SCHEDULED,
                models.TimeSlot.start_time < now,
            ))
        with store_step(self.db, "load time slots", user_id):
            return (
                self.db.query(models.TimeSlot)
                .filter(models.TimeSlot.user_id == user_id, or_(*kept))
                .order_by(models.TimeSlot.start_time)
                .all()
            )

    def delete_future_scheduled(self, user_id: int, now: datetime) -> int:
        with store_step(self.db, "clear schedule", user_id):
            count = (
                self.db.query(models.TimeSlot)
                .filter(
                    models.TimeSlot.user_id == user_id,
                    models.TimeSlot.status == models.SlotStatus.SCHEDULED,
                    models.TimeSlot.is_fixed.is_(False),
                    models.TimeSlot.start_time >= now,
                )
                .delete(synchronize_session="fetch")
            )
            self.db.commit()
            return count

    def create_many(self, slots: List[models.TimeSlot]) -> List[models.TimeSlot]:
        if not slots:
            return []
        with store_step(self.db, "persist schedule", slots[0].user_id):
            self.db.add_all(slots)
            self.db.commit()
            for slot in slots:
                self.db.refresh(slot)
            return slots


class SqlPreferenceStore(PreferenceStore):
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[models.UserPreference]:
        with store_step(self.db, "load preferences", user_id):
            return (
                self.db.query(models.UserPreference)
                .filter(models.UserPreference.user_id == user_id)
                .first()
            )

    def create_default(self, user_id: int) -> models.UserPreference:
        pref = models.UserPreference(
            user_id=user_id,
            work_start=DEFAULT_WORK_START,
            work_end=DEFAULT_WORK_END,
            break_duration=DEFAULT_BREAK_DURATION,
            buffer_time=DEFAULT_BUFFER_TIME,
            scheduling_mode=models.SchedulingMode.SPREAD,
            work_days=list(DEFAULT_WORK_DAYS),
        )
        try:
            self.db.add(pref)
            self.db.commit()
        except IntegrityError:
            # someone else created it first; one preference per user
            self.db.rollback()
            existing = self.get(user_id)
            if existing is None:
                raise PersistenceError("create preferences", "preference vanished after unique conflict")
            return existing
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store failure", step="create preferences", user_id=user_id, error=str(e))
            raise PersistenceError("create preferences", str(e)) from e
        self.db.refresh(pref)
        logger.info("Created default preferences", user_id=user_id)
        return pref

    def get_or_create(self, user_id: int) -> models.UserPreference:
        return self.get(user_id) or self.create_default(user_id)
