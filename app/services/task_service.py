"""Task service - creation, edits, transfer, soft delete, files and work history."""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from app.core import permissions
from app.core.calendar import utcnow
from app.core.config import settings
from app.core.database import unit_of_work
from app.core.errors import ValidationError, NotFoundError
from app.core.principal import Principal
from app.models.employee import Employee
from app.models.task import Task, TaskStatus, TaskPriority
from app.models.user import User
from app.models.work_log import TaskWorkLog
from app.schemas.task import TaskCreate, TaskUpdate, TaskFilter
from app.services import task_repository as repo
from app.services.file_store import FileStore, FileUpload
from app.services.task_status import task_worker_lock

logger = logging.getLogger(__name__)

# explicit null is refused for these
REQUIRED_FIELDS = ("title", "priority")


def resolve_assignee(db: Session, user_id: Optional[int], employee_id: Optional[int]) -> Optional[int]:
    """User id of the assignee, given directly or through an employee profile."""
    if user_id is not None:
        if db.query(User).filter(User.id == user_id).first() is None:
            raise ValidationError("invalid assignee user id")
        return user_id
    if employee_id is not None:
        employee = db.query(Employee).filter(Employee.id == employee_id).first()
        if employee is None:
            raise ValidationError("invalid assignee employee id")
        return employee.user_id
    return None


def _store_file(file_store: FileStore, bucket: str, upload: FileUpload) -> str:
    return file_store.upload(bucket, upload.filename, upload.content, upload.content_type)


def create_task(
    db: Session,
    principal: Principal,
    data: TaskCreate,
    upload: Optional[FileUpload] = None,
    file_store: Optional[FileStore] = None,
) -> Task:
    permissions.require(permissions.can_create_task(principal))
    assignee_id = resolve_assignee(db, data.assignee_user_id, data.assignee_employee_id)

    file_url = None
    if upload is not None and file_store is not None:
        file_url = _store_file(file_store, settings.MANAGER_FILES_BUCKET, upload)

    with unit_of_work(db, "create task"):
        task = repo.create_task(
            db,
            title=data.title,
            notes=data.notes,
            due_date=data.due_date,
            priority=data.priority.value,
            assigned_hours=data.assigned_hours,
            status=TaskStatus.TODO.value,
            created_by_id=principal.id,
            assignee_id=assignee_id,
            file_url_manager=file_url,
        )
    db.refresh(task)
    logger.info(f"Task {task.id} created by {principal.id} for assignee {assignee_id}")
    return task


def get_task(db: Session, principal: Principal, task_id: int) -> Task:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_view_task(principal, task))
    return task


def update_task(
    db: Session,
    principal: Principal,
    task_id: int,
    data: TaskUpdate,
    upload: Optional[FileUpload] = None,
    file_store: Optional[FileStore] = None,
) -> Task:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_edit_task(principal, task))

    supplied = data.model_dump(exclude_unset=True)
    for field in REQUIRED_FIELDS:
        if field in supplied and supplied[field] is None:
            raise ValidationError(f"{field} cannot be empty")

    changes = {}
    for field in ("title", "notes", "due_date", "assigned_hours"):
        if field in supplied:
            changes[field] = supplied[field]
    if "priority" in supplied:
        changes["priority"] = TaskPriority(supplied["priority"]).value

    if data.assignee_user_id is not None or data.assignee_employee_id is not None:
        changes["assignee_id"] = resolve_assignee(db, data.assignee_user_id, data.assignee_employee_id)

    if upload is not None and file_store is not None:
        changes["file_url_manager"] = _store_file(file_store, settings.MANAGER_FILES_BUCKET, upload)

    with task_worker_lock(db, task, principal):
        with unit_of_work(db, "update task"):
            if "assignee_id" in changes and changes["assignee_id"] != task.assignee_id:
                # a new assignee starts from TODO, as on transfer
                changes["status"] = TaskStatus.TODO.value
            repo.apply_changes(task, changes)
    db.refresh(task)
    return task


def list_tasks(db: Session, principal: Principal, task_filter: Optional[TaskFilter] = None) -> List[Task]:
    task_filter = task_filter or TaskFilter()
    scope = permissions.listing_scope(principal)
    if scope is not None:
        # operators only ever see their own, whatever the filter says
        task_filter = task_filter.model_copy(update={"assignee_id": scope})
    task_filter = task_filter.model_copy(update={"include_deleted": False})
    return repo.list_tasks(db, task_filter)


def set_task_priority(db: Session, principal: Principal, task_id: int, priority: TaskPriority) -> Task:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_set_priority(principal, task))

    with unit_of_work(db, "update priority"):
        repo.apply_changes(task, {"priority": TaskPriority(priority).value})
    db.refresh(task)
    return task


def transfer_task(
    db: Session,
    principal: Principal,
    task_id: int,
    new_assignee_user_id: Optional[int] = None,
    new_employee_id: Optional[int] = None,
) -> Task:
    """Reassign and reset to TODO. The previous assignee's running log is left as is."""
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_transfer_task(principal, task))

    assignee_id = resolve_assignee(db, new_assignee_user_id, new_employee_id)
    if assignee_id is None:
        raise ValidationError("assignee required")

    with task_worker_lock(db, task, principal):
        with unit_of_work(db, "transfer task"):
            previous = task.assignee_id
            repo.apply_changes(task, {"assignee_id": assignee_id, "status": TaskStatus.TODO.value})
    db.refresh(task)
    logger.info(f"Task {task.id} transferred from {previous} to {assignee_id} by {principal.id}")
    return task


def soft_delete_task(db: Session, principal: Principal, task_id: int) -> Task:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_delete_task(principal, task))

    with unit_of_work(db, "delete task"):
        repo.soft_delete_task(db, task.id)
    db.refresh(task)
    logger.info(f"Task {task.id} soft-deleted by {principal.id}")
    return task


def upload_operator_file(
    db: Session,
    principal: Principal,
    task_id: int,
    upload: FileUpload,
    file_store: FileStore,
) -> Task:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_upload_operator_file(principal, task))
    if not upload.content:
        raise ValidationError("No file provided")

    url = _store_file(file_store, settings.OPERATOR_FILES_BUCKET, upload)
    with unit_of_work(db, "record operator file"):
        repo.apply_changes(task, {"file_url_operator": url})
    db.refresh(task)
    return task


def worked_hours(logs: List[TaskWorkLog], now: Optional[datetime] = None) -> float:
    """Sum of session lengths in hours; running sessions count up to now."""
    now = now or utcnow()
    seconds = sum(((log.end_time or now) - log.start_time).total_seconds() for log in logs)
    return round(seconds / 3600, 2)


def list_work_logs(db: Session, principal: Principal, task_id: int) -> List[TaskWorkLog]:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_view_task(principal, task))
    return repo.work_logs_for(db, task.id)


def completed_tasks_for_employee(db: Session, principal: Principal, employee_id: int) -> List[Task]:
    permissions.require(permissions.can_view_performance(principal))
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFoundError("Employee not found")

    return repo.task_query(db).filter(
        Task.assignee_id == employee.user_id,
        Task.status == TaskStatus.DONE.value,
    ).order_by(Task.updated_at.desc()).all()
