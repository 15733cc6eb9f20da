import os

import typer
import httpx
from typing import List, Optional

app = typer.Typer()
API_URL = os.getenv("AUTOPLANNER_API_URL", "http://localhost:8000")
USER_ID = os.getenv("AUTOPLANNER_USER_ID", "1")


def headers():
    return {"X-User-Id": USER_ID}


# Task Commands
@app.command()
def list_tasks():
    """List all tasks"""
    resp = httpx.get(f"{API_URL}/tasks/", headers=headers())
    resp.raise_for_status()
    for t in resp.json():
        typer.echo(f"[{t['id']}] {t['title']} (deadline={t['deadline']}, priority={t['priority']}, status={t['status']})")


@app.command()
def create_task(
    title: str,
    deadline: str = typer.Option(..., help="ISO datetime deadline, e.g. 2025-05-25T17:00:00"),
    priority: str = typer.Option("medium", help="high, medium or low"),
    session: int = typer.Option(30, help="Minimum work session in minutes"),
    estimate: Optional[int] = typer.Option(None, help="Total minutes, split into sessions"),
    depends_on: Optional[List[int]] = typer.Option(None, help="Id of a task to finish first (repeatable)"),
    description: Optional[str] = None
):
    """Create a task"""
    payload = {"title": title, "deadline": deadline, "priority": priority, "min_work_session": session}
    if estimate is not None:
        payload['estimate'] = estimate
    if depends_on:
        payload['dependency_ids'] = list(depends_on)
    if description:
        payload['description'] = description
    resp = httpx.post(f"{API_URL}/tasks/", json=payload, headers=headers())
    resp.raise_for_status()
    t = resp.json()
    typer.echo(f"Created task [ID {t['id']}] {t['title']}")


@app.command()
def update_task(
    task_id: int,
    status: Optional[str] = typer.Option(None, help="New status"),
    title: Optional[str] = typer.Option(None),
    priority: Optional[str] = typer.Option(None),
    deadline: Optional[str] = typer.Option(None),
):
    """Update a task"""
    payload = {}
    if status:
        payload['status'] = status
    if title:
        payload['title'] = title
    if priority:
        payload['priority'] = priority
    if deadline:
        payload['deadline'] = deadline
    if not payload:
        typer.echo("No updates provided.")
        raise typer.Exit()
    resp = httpx.patch(f"{API_URL}/tasks/{task_id}", json=payload, headers=headers())
    resp.raise_for_status()
    t = resp.json()
    typer.echo(f"Updated task [ID {t['id']}] status={t['status']} priority={t['priority']}")


@app.command()
def delete_task(task_id: int):
    """Delete a task"""
    resp = httpx.delete(f"{API_URL}/tasks/{task_id}", headers=headers())
    if resp.status_code == 204:
        typer.echo(f"Deleted task ID {task_id}")
    else:
        resp.raise_for_status()


# Routine Commands
@app.command()
def list_routines():
    """List routine blocks"""
    resp = httpx.get(f"{API_URL}/routines/", headers=headers())
    resp.raise_for_status()
    for r in resp.json():
        when = f"days={r['days_of_week']}" if r['is_recurring'] else f"on {r['specific_date']}"
        typer.echo(f"[{r['id']}] {r['title']} {r['start_time']}-{r['end_time']} {when} ({r['category']})")


@app.command()
def create_routine(
    title: str,
    start: str = typer.Option(..., help="Time of day, e.g. 12:00"),
    end: str = typer.Option(..., help="Time of day, e.g. 13:00"),
    day: Optional[List[int]] = typer.Option(None, help="Weekday, 0 = Sunday (repeatable)"),
    on: Optional[str] = typer.Option(None, help="ISO date for a one-off block"),
    category: str = typer.Option("other"),
):
    """Create a routine block, recurring by weekday or one-off on a date"""
    payload = {"title": title, "start_time": start, "end_time": end, "category": category}
    if on:
        payload.update(is_recurring=False, specific_date=on)
    else:
        payload.update(is_recurring=True, days_of_week=list(day or []))
    resp = httpx.post(f"{API_URL}/routines/", json=payload, headers=headers())
    resp.raise_for_status()
    r = resp.json()
    typer.echo(f"Created routine block [ID {r['id']}] {r['title']}")


@app.command()
def delete_routine(routine_id: int):
    """Delete a routine block"""
    resp = httpx.delete(f"{API_URL}/routines/{routine_id}", headers=headers())
    if resp.status_code == 204:
        typer.echo(f"Deleted routine block ID {routine_id}")
    else:
        resp.raise_for_status()


# Preference Commands
@app.command()
def show_preferences():
    """Show working hours and scheduling mode"""
    resp = httpx.get(f"{API_URL}/preferences/", headers=headers())
    resp.raise_for_status()
    p = resp.json()
    typer.echo(f"Working hours {p['work_start']}-{p['work_end']} on days {p['work_days']}")
    typer.echo(f"Mode={p['scheduling_mode']} break={p['break_duration']}m buffer={p['buffer_time']}m")


@app.command()
def set_mode(mode: str = typer.Argument(..., help="fast or spread")):
    """Switch scheduling mode (reschedules everything)"""
    resp = httpx.patch(f"{API_URL}/preferences/", json={"scheduling_mode": mode}, headers=headers())
    resp.raise_for_status()
    typer.echo(f"Scheduling mode is now {resp.json()['scheduling_mode']}")


# Schedule Commands
@app.command()
def recalculate():
    """Recalculate the schedule and print conflicts"""
    resp = httpx.post(f"{API_URL}/schedule/recalculate", headers=headers())
    resp.raise_for_status()
    result = resp.json()
    if not result['conflicts']:
        typer.echo("Schedule recalculated, no conflicts.")
        return
    typer.echo(f"Schedule recalculated with {len(result['conflicts'])} conflict(s):")
    for c in result['conflicts']:
        typer.echo(f"  task {c['task_id']}: {c['message']}")


@app.command()
def show_schedule(
    start: str = typer.Option(..., help="ISO datetime"),
    end: str = typer.Option(..., help="ISO datetime"),
):
    """Show time slots between two datetimes"""
    resp = httpx.get(f"{API_URL}/schedule/", params={"start": start, "end": end}, headers=headers())
    resp.raise_for_status()
    for s in resp.json():
        typer.echo(f"[{s['id']}] task {s['task_id']} {s['start_time']} -> {s['end_time']} ({s['status']})")


@app.command()
def complete_slot(slot_id: int):
    """Mark a time slot as completed"""
    resp = httpx.patch(f"{API_URL}/schedule/{slot_id}/complete", headers=headers())
    resp.raise_for_status()
    typer.echo(f"Time slot {slot_id} completed")


@app.command()
def start_slot(slot_id: int):
    """Mark a time slot as in progress"""
    resp = httpx.patch(f"{API_URL}/schedule/{slot_id}/start", headers=headers())
    resp.raise_for_status()
    typer.echo(f"Time slot {slot_id} in progress")


if __name__ == "__main__":
    app()
