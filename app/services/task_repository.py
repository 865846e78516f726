"""
Task storage operations.

Every query built here excludes soft-deleted rows unless the filter opts in
explicitly. Callers own the transaction: nothing in this module commits.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.calendar import utcnow
from app.core.database import supports_row_locking
from app.core.errors import NotFoundError
from app.models.task import Task, TaskStatus
from app.models.user import User
from app.models.work_log import TaskWorkLog
from app.schemas.task import TaskFilter


# partial-update whitelist; created_by_id is immutable
UPDATABLE_FIELDS = (
    "title",
    "notes",
    "status",
    "priority",
    "due_date",
    "assigned_hours",
    "assignee_id",
    "file_url_manager",
    "file_url_operator",
)


def task_query(db: Session, include_deleted: bool = False):
    query = db.query(Task)
    if not include_deleted:
        query = query.filter(Task.is_deleted == False)  # noqa: E712
    return query


def create_task(db: Session, **attrs) -> Task:
    task = Task(**attrs)
    db.add(task)
    db.flush()
    return task


def get_task(db: Session, task_id: int, include_deleted: bool = False) -> Task:
    task = task_query(db, include_deleted).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def update_task(db: Session, task_id: int, changes: dict, now: Optional[datetime] = None) -> Task:
    task = get_task(db, task_id)
    apply_changes(task, changes, now)
    db.flush()
    return task


def apply_changes(task: Task, changes: dict, now: Optional[datetime] = None) -> Task:
    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            raise ValueError(f"{field} is not an updatable task field")
        setattr(task, field, value)
    task.updated_at = now or utcnow()
    return task


def list_tasks(db: Session, task_filter: Optional[TaskFilter] = None) -> List[Task]:
    task_filter = task_filter or TaskFilter()
    query = task_query(db, task_filter.include_deleted)

    if task_filter.assignee_id is not None:
        query = query.filter(Task.assignee_id == task_filter.assignee_id)
    if task_filter.created_by_id is not None:
        query = query.filter(Task.created_by_id == task_filter.created_by_id)
    if task_filter.status is not None:
        query = query.filter(Task.status == task_filter.status.value)

    return query.order_by(Task.created_at.desc(), Task.id.desc()).all()


def soft_delete_task(db: Session, task_id: int, now: Optional[datetime] = None) -> Task:
    task = get_task(db, task_id)
    task.is_deleted = True
    task.updated_at = now or utcnow()
    db.flush()
    return task


# ---------- work sessions ----------

def lock_worker(db: Session, user_id: int) -> None:
    """Row-lock the worker's user record until the transaction ends (no-op on SQLite)."""
    if supports_row_locking(db):
        db.query(User).filter(User.id == user_id).with_for_update().first()


def lock_task(db: Session, task_id: int) -> Task:
    """Re-read a live task, row-locked until the transaction ends where supported."""
    query = task_query(db).filter(Task.id == task_id).populate_existing()
    if supports_row_locking(db):
        query = query.with_for_update()
    task = query.first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def find_active_task(db: Session, user_id: int, exclude_task_id: Optional[int] = None) -> Optional[Task]:
    query = task_query(db).filter(
        Task.assignee_id == user_id,
        Task.status == TaskStatus.WORKING.value,
    )
    if exclude_task_id is not None:
        query = query.filter(Task.id != exclude_task_id)
    return query.first()


def open_logs(db: Session, task_id: int, user_id: int) -> List[TaskWorkLog]:
    return db.query(TaskWorkLog).filter(
        TaskWorkLog.task_id == task_id,
        TaskWorkLog.user_id == user_id,
        TaskWorkLog.end_time.is_(None),
    ).all()


def open_work_log(db: Session, task_id: int, user_id: int, now: datetime) -> TaskWorkLog:
    log = TaskWorkLog(task_id=task_id, user_id=user_id, start_time=now)
    db.add(log)
    db.flush()
    return log


def close_open_logs(db: Session, task_id: int, user_id: int, now: datetime) -> int:
    """Close every running session of this task/worker; safe to repeat."""
    return db.query(TaskWorkLog).filter(
        TaskWorkLog.task_id == task_id,
        TaskWorkLog.user_id == user_id,
        TaskWorkLog.end_time.is_(None),
    ).update({TaskWorkLog.end_time: now}, synchronize_session="fetch")


def work_logs_for(db: Session, task_id: int) -> List[TaskWorkLog]:
    return db.query(TaskWorkLog).filter(
        TaskWorkLog.task_id == task_id
    ).order_by(TaskWorkLog.start_time, TaskWorkLog.id).all()
