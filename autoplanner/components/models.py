#autoplanner/components/models.py
import enum
import os
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, Date, Time, Boolean, ForeignKey, Enum, JSON
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

DEFAULT_MIN_WORK_SESSION = int(os.getenv('DEFAULT_MIN_WORK_SESSION', '30'))


class Priority(enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        # high sorts first
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class TaskStatus(enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SlotStatus(enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    RESCHEDULED = "rescheduled"


class SchedulingMode(enum.Enum):
    FAST = "fast"
    SPREAD = "spread"


class RoutineCategory(enum.Enum):
    WORK = "work"
    CLASS = "class"
    PERSONAL = "personal"
    OTHER = "other"


class Task(Base):
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    deadline = Column(DateTime, nullable=False)
    priority = Column(Enum(Priority), nullable=False, default=Priority.MEDIUM)
    status = Column(Enum(TaskStatus), nullable=False, default=TaskStatus.NOT_STARTED)
    min_work_session = Column(Integer, nullable=False, default=DEFAULT_MIN_WORK_SESSION)  # in minutes
    estimate = Column(Integer, nullable=True)  # total minutes, splits into sessions
    tags = Column(JSON, nullable=False, default=list)
    # ordered ids of tasks that must be worked on first
    dependency_ids = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # slots outlive their task; deleting a task only unlinks committed ones
    time_slots = relationship("TimeSlot", back_populates="task")


class RoutineBlock(Base):
    __tablename__ = "routine_blocks"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    days_of_week = Column(JSON, nullable=False, default=list)  # 0 = Sunday
    is_recurring = Column(Boolean, nullable=False, default=True)
    specific_date = Column(Date, nullable=True)
    category = Column(Enum(RoutineCategory), nullable=False, default=RoutineCategory.OTHER)


class TimeSlot(Base):
    __tablename__ = "time_slots"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(Enum(SlotStatus), nullable=False, default=SlotStatus.SCHEDULED)
    is_fixed = Column(Boolean, nullable=False, default=False)

    task = relationship("Task", back_populates="time_slots")


class UserPreference(Base):
    __tablename__ = "user_preferences"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True)
    work_start = Column(Time, nullable=False)
    work_end = Column(Time, nullable=False)
    break_duration = Column(Integer, nullable=False, default=15)  # in minutes
    buffer_time = Column(Integer, nullable=False, default=10)  # in minutes, not used for spacing yet
    scheduling_mode = Column(Enum(SchedulingMode), nullable=False, default=SchedulingMode.SPREAD)
    work_days = Column(JSON, nullable=False, default=lambda: [1, 2, 3, 4, 5])
