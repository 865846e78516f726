"""Read-only dashboards: operator overview and per-employee performance."""

from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.calendar import utcnow, iso_week_number
from app.core.principal import Principal
from app.models.task import Task, TaskStatus
from app.models.work_log import TaskWorkLog
from app.services import task_repository as repo
from app.services.employee_service import get_employee
from app.services.task_service import worked_hours

TREND_WEEKS = 4


def _count(tasks: List[Task], status: TaskStatus) -> int:
    return sum(1 for t in tasks if t.status == status.value)


def _rate(done: int, total: int) -> int:
    return round(done / total * 100) if total else 0


def completion_trend(tasks: List[Task], now: datetime) -> List[dict]:
    """Share of tasks touched in each of the last weeks that ended DONE, oldest first.

    Windows are trailing seven-day spans, the newest one ending at `now`.
    """
    trend = []
    for weeks_back in range(TREND_WEEKS - 1, -1, -1):
        end = now - timedelta(days=weeks_back * 7)
        start = end - timedelta(days=7)
        touched = [t for t in tasks if start < t.updated_at <= end]
        done = _count(touched, TaskStatus.DONE)
        trend.append({
            "week": f"Wk {iso_week_number(end.date())}",
            "rate": _rate(done, len(touched)),
        })
    return trend


def operator_dashboard(db: Session, principal: Principal, now: Optional[datetime] = None) -> dict:
    permissions.require(permissions.can_view_operator_dashboard(principal))
    now = now or utcnow()

    tasks = repo.task_query(db).filter(
        Task.assignee_id == principal.id
    ).order_by(Task.due_date.asc(), Task.id.asc()).all()

    total = len(tasks)
    completed = _count(tasks, TaskStatus.DONE)
    return {
        "tasks": tasks,
        "stats": {
            "total_tasks": total,
            "completed_tasks": completed,
            "in_progress_tasks": _count(tasks, TaskStatus.WORKING),
            "pending_tasks": _count(tasks, TaskStatus.TODO),
            "stuck_tasks": _count(tasks, TaskStatus.STUCK),
            "completion_rate": _rate(completed, total),
            "completion_trend": completion_trend(tasks, now),
        },
    }


def employee_performance(db: Session, principal: Principal, employee_id: int,
                         now: Optional[datetime] = None) -> dict:
    permissions.require(permissions.can_view_performance(principal))
    employee = get_employee(db, employee_id)

    tasks = repo.task_query(db).filter(Task.assignee_id == employee.user_id).all()
    logs = db.query(TaskWorkLog).filter(TaskWorkLog.user_id == employee.user_id).all()

    total = len(tasks)
    completed = _count(tasks, TaskStatus.DONE)
    return {
        "employee": employee,
        "email": employee.user.email,
        "performance": {
            "total_tasks": total,
            "completed": completed,
            "working": _count(tasks, TaskStatus.WORKING),
            "stuck": _count(tasks, TaskStatus.STUCK),
            "completion_rate": _rate(completed, total),
            "assigned_hours": sum(t.assigned_hours or 0 for t in tasks),
            "logged_hours": worked_hours(logs, now),
        },
    }
