#autoplanner/components/schemas.py
from datetime import datetime, date, time
from typing import Optional, List

from pydantic import BaseModel, Field, model_validator

from autoplanner.components.models import (
    Priority,
    TaskStatus,
    SlotStatus,
    SchedulingMode,
    RoutineCategory,
    DEFAULT_MIN_WORK_SESSION,
)


def check_weekdays(days: Optional[List[int]]) -> None:
    if days is None:
        return
    if any(d < 0 or d > 6 for d in days):
        raise ValueError('Days must be between 0 (Sunday) and 6 (Saturday)')
    if len(set(days)) != len(days):
        raise ValueError('Days must not repeat')


def check_window(start: Optional[time], end: Optional[time], what: str) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError(f'{what} must end after it starts')


# Task Schemas
class TaskBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    deadline: datetime
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.NOT_STARTED
    min_work_session: int = Field(default=DEFAULT_MIN_WORK_SESSION, gt=0, description="Minutes per work session")
    estimate: Optional[int] = Field(None, gt=0, description="Total minutes, split into sessions")
    tags: List[str] = Field(default_factory=list)
    dependency_ids: List[int] = Field(default_factory=list)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    min_work_session: Optional[int] = Field(None, gt=0)
    estimate: Optional[int] = Field(None, gt=0)
    tags: Optional[List[str]] = None
    dependency_ids: Optional[List[int]] = None


class Task(TaskBase):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Routine Schemas
class RoutineBase(BaseModel):
    title: str = Field(..., min_length=1)
    start_time: time
    end_time: time
    days_of_week: List[int] = Field(default_factory=list, description="0 = Sunday ... 6 = Saturday")
    is_recurring: bool = True
    specific_date: Optional[date] = None
    category: RoutineCategory = RoutineCategory.OTHER

    @model_validator(mode='after')
    def validate_fields(self):
        check_window(self.start_time, self.end_time, 'Routine block')
        check_weekdays(self.days_of_week)
        if self.is_recurring and not self.days_of_week:
            raise ValueError('Recurring routine blocks need at least one day of the week')
        if not self.is_recurring and self.specific_date is None:
            raise ValueError('One-off routine blocks need a specific_date')
        return self


class RoutineCreate(RoutineBase):
    pass


class RoutineUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    days_of_week: Optional[List[int]] = None
    is_recurring: Optional[bool] = None
    specific_date: Optional[date] = None
    category: Optional[RoutineCategory] = None

    @model_validator(mode='after')
    def validate_update(self):
        check_window(self.start_time, self.end_time, 'Routine block')
        check_weekdays(self.days_of_week)
        return self


class Routine(RoutineBase):
    id: int
    user_id: int

    class Config:
        from_attributes = True


# Preference Schemas
class Preference(BaseModel):
    user_id: int
    work_start: time
    work_end: time
    break_duration: int
    buffer_time: int
    scheduling_mode: SchedulingMode
    work_days: List[int]

    class Config:
        from_attributes = True


class PreferenceUpdate(BaseModel):
    work_start: Optional[time] = None
    work_end: Optional[time] = None
    break_duration: Optional[int] = Field(None, ge=0)
    buffer_time: Optional[int] = Field(None, ge=0)
    scheduling_mode: Optional[SchedulingMode] = None
    work_days: Optional[List[int]] = None

    @model_validator(mode='after')
    def validate_update(self):
        check_window(self.work_start, self.work_end, 'Working hours')
        check_weekdays(self.work_days)
        return self


# Schedule Schemas
class TimeSlot(BaseModel):
    id: int
    user_id: int
    task_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    status: SlotStatus
    is_fixed: bool

    class Config:
        from_attributes = True


class ConflictOut(BaseModel):
    task_id: int
    message: str


class RecalculationResult(BaseModel):
    success: bool
    conflicts: List[ConflictOut] = Field(default_factory=list)
