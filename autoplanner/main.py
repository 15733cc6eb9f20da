# autoplanner/main.py
import os
import threading
import weakref
from datetime import datetime
from typing import List

from dotenv import load_dotenv
from fastapi import FastAPI, Depends, Header, HTTPException, Request
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

load_dotenv()

from autoplanner.components import models, schemas, crud, scheduler
from autoplanner.components.database import SessionLocal, engine
from autoplanner.components.errors import PersistenceError
from autoplanner.components.observability import get_logger, setup_logging

setup_logging(os.getenv('LOG_LEVEL', 'INFO'))
logger = get_logger(__name__)

models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="autoplanner API", default_response_class=ORJSONResponse)

# one recalculation in flight per user; a lock lives while someone holds it
_user_locks = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user_id(x_user_id: int = Header(default=1)) -> int:
    return x_user_id


def user_lock(user_id: int) -> threading.Lock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _user_locks[user_id] = lock
        return lock


def run_recalculation(db: Session, user_id: int) -> schemas.RecalculationResult:
    with user_lock(user_id):
        return scheduler.recalculate(db, user_id)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Request failed on the store", path=request.url.path, step=exc.step)
    return ORJSONResponse(
        status_code=500,
        content={"detail": exc.message, "step": exc.step},
    )


# Tasks
@app.post("/tasks/", response_model=schemas.Task, status_code=201)
def create_task(task: schemas.TaskCreate, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    try:
        db_task = crud.create_task(db, user_id, task)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    run_recalculation(db, user_id)
    return db_task


@app.get("/tasks/", response_model=List[schemas.Task])
def list_tasks(skip: int = 0, limit: int = 100, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    return crud.get_tasks(db, user_id, skip=skip, limit=limit)


@app.get("/tasks/{task_id}", response_model=schemas.Task)
def get_task(task_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    db_task = crud.get_task(db, user_id, task_id)
    if not db_task:
        raise HTTPException(status_code=404, detail="Task not found")
    return db_task


@app.patch("/tasks/{task_id}", response_model=schemas.Task)
def update_task(task_id: int, updates: schemas.TaskUpdate, db: Session = Depends(get_db),
                user_id: int = Depends(get_user_id)):
    db_task = crud.get_task(db, user_id, task_id)
    if not db_task:
        raise HTTPException(status_code=404, detail="Task not found")
    try:
        db_task = crud.update_task(db, db_task, updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    run_recalculation(db, user_id)
    return db_task


@app.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    db_task = crud.get_task(db, user_id, task_id)
    if not db_task:
        raise HTTPException(status_code=404, detail="Task not found")
    crud.delete_task(db, db_task)
    run_recalculation(db, user_id)
    return None


# Routine blocks
@app.post("/routines/", response_model=schemas.Routine, status_code=201)
def create_routine(routine: schemas.RoutineCreate, db: Session = Depends(get_db),
                   user_id: int = Depends(get_user_id)):
    db_routine = crud.create_routine(db, user_id, routine)
    run_recalculation(db, user_id)
    return db_routine


@app.get("/routines/", response_model=List[schemas.Routine])
def list_routines(db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    return crud.get_routines(db, user_id)


@app.patch("/routines/{routine_id}", response_model=schemas.Routine)
def update_routine(routine_id: int, updates: schemas.RoutineUpdate, db: Session = Depends(get_db),
                   user_id: int = Depends(get_user_id)):
    db_routine = crud.get_routine(db, user_id, routine_id)
    if not db_routine:
        raise HTTPException(status_code=404, detail="Routine block not found")
    try:
        db_routine = crud.update_routine(db, db_routine, updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    run_recalculation(db, user_id)
    return db_routine


@app.delete("/routines/{routine_id}", status_code=204)
def delete_routine(routine_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    db_routine = crud.get_routine(db, user_id, routine_id)
    if not db_routine:
        raise HTTPException(status_code=404, detail="Routine block not found")
    crud.delete_routine(db, db_routine)
    run_recalculation(db, user_id)
    return None


# Preferences
@app.get("/preferences/", response_model=schemas.Preference)
def get_preferences(db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    return crud.get_preference(db, user_id)


@app.patch("/preferences/", response_model=schemas.Preference)
def update_preferences(updates: schemas.PreferenceUpdate, db: Session = Depends(get_db),
                       user_id: int = Depends(get_user_id)):
    try:
        pref = crud.update_preference(db, user_id, updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if updates.scheduling_mode is not None:
        run_recalculation(db, user_id)
    return pref


# Schedule
@app.get("/schedule/", response_model=List[schemas.TimeSlot])
def get_schedule(start: datetime, end: datetime, db: Session = Depends(get_db),
                 user_id: int = Depends(get_user_id)):
    if end <= start:
        raise HTTPException(status_code=400, detail="end must be after start")
    return crud.get_slots(db, user_id, start, end)


@app.post("/schedule/recalculate", response_model=schemas.RecalculationResult)
def recalculate_schedule(db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    """
    Rebuild the automatic schedule now and report the tasks that could not be placed.
    """
    return run_recalculation(db, user_id)


@app.patch("/schedule/{slot_id}/complete", response_model=schemas.TimeSlot)
def complete_slot(slot_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    db_slot = crud.get_slot(db, user_id, slot_id)
    if not db_slot:
        raise HTTPException(status_code=404, detail="Time slot not found")
    return crud.set_slot_status(db, db_slot, models.SlotStatus.COMPLETED)


@app.patch("/schedule/{slot_id}/start", response_model=schemas.TimeSlot)
def start_slot(slot_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_user_id)):
    db_slot = crud.get_slot(db, user_id, slot_id)
    if not db_slot:
        raise HTTPException(status_code=404, detail="Time slot not found")
    return crud.set_slot_status(db, db_slot, models.SlotStatus.IN_PROGRESS)
