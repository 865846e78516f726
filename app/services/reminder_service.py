"""
Reminder service - deadline reminders with per-user dismiss/snooze overlays.

Reminders are computed at read time from the tasks; the overlay rows only
suppress them and never touch the task itself.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from app.core.calendar import utcnow, days_remaining
from app.core.config import settings
from app.core.database import unit_of_work
from app.core.principal import Principal
from app.models.reminder import TaskReminder, ReminderStatus
from app.models.task import Task, TaskStatus
from app.services import task_repository as repo

logger = logging.getLogger(__name__)

OVERDUE = "Overdue"
DUE_TODAY = "Due Today"
UPCOMING = "Upcoming"


def reminder_label(remaining: int) -> str:
    if remaining < 0:
        return OVERDUE
    if remaining == 0:
        return DUE_TODAY
    return UPCOMING


def is_suppressed(overlay: Optional[TaskReminder], now: datetime) -> bool:
    if overlay is None:
        return False
    if overlay.status == ReminderStatus.DISMISSED.value:
        return True
    if overlay.status == ReminderStatus.SNOOZED.value:
        return overlay.snooze_until is not None and now < overlay.snooze_until
    return False


def candidate_tasks(db: Session, user_id: int, now: datetime) -> List[Task]:
    horizon = now + timedelta(days=settings.REMINDER_WINDOW_DAYS)
    return repo.task_query(db).filter(
        Task.assignee_id == user_id,
        Task.status != TaskStatus.DONE.value,
        Task.due_date.isnot(None),
        Task.due_date <= horizon,
    ).order_by(Task.due_date.asc(), Task.id.asc()).all()


def list_reminders(db: Session, principal: Principal, now: Optional[datetime] = None) -> List[dict]:
    now = now or utcnow()
    tasks = candidate_tasks(db, principal.id, now)
    if not tasks:
        return []

    overlays: Dict[int, TaskReminder] = {
        r.task_id: r
        for r in db.query(TaskReminder).filter(
            TaskReminder.user_id == principal.id,
            TaskReminder.task_id.in_([t.id for t in tasks]),
        ).all()
    }

    reminders = []
    for task in tasks:
        if is_suppressed(overlays.get(task.id), now):
            continue
        remaining = days_remaining(task.due_date, now)
        reminders.append({
            "id": task.id,
            "title": task.title,
            "due_date": task.due_date,
            "days_remaining": remaining,
            "status": reminder_label(remaining),
            "original_status": task.status,
            "priority": task.priority,
        })
    return reminders


def effective_snooze_hours(hours: Optional[int]) -> int:
    if not hours or hours <= 0:
        return settings.DEFAULT_SNOOZE_HOURS
    return hours


def _upsert_overlay(db: Session, task_id: int, user_id: int, status: ReminderStatus,
                    snooze_until: Optional[datetime]) -> TaskReminder:
    def write():
        overlay = db.query(TaskReminder).filter(
            TaskReminder.task_id == task_id,
            TaskReminder.user_id == user_id,
        ).first()
        if overlay is None:
            overlay = TaskReminder(task_id=task_id, user_id=user_id)
            db.add(overlay)
        overlay.status = status.value
        overlay.snooze_until = snooze_until
        return overlay

    with unit_of_work(db, "update reminder"):
        try:
            overlay = write()
            db.flush()
        except IntegrityError:
            # lost the insert race on (task_id, user_id); the row exists now
            db.rollback()
            overlay = write()
    db.refresh(overlay)
    return overlay


def dismiss_reminder(db: Session, principal: Principal, task_id: int) -> TaskReminder:
    repo.get_task(db, task_id)
    overlay = _upsert_overlay(db, task_id, principal.id, ReminderStatus.DISMISSED, None)
    logger.info(f"Reminder for task {task_id} dismissed by {principal.id}")
    return overlay


def snooze_reminder(db: Session, principal: Principal, task_id: int,
                    hours: Optional[int] = None, now: Optional[datetime] = None) -> TaskReminder:
    repo.get_task(db, task_id)
    hours = effective_snooze_hours(hours)
    now = now or utcnow()
    overlay = _upsert_overlay(db, task_id, principal.id, ReminderStatus.SNOOZED, now + timedelta(hours=hours))
    logger.info(f"Reminder for task {task_id} snoozed {hours}h by {principal.id}")
    return overlay
