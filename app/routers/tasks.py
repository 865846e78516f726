from fastapi import APIRouter, Depends, File, Form, UploadFile, status, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional

from app.core.auth import get_current_principal
from app.core.database import get_db
from app.core.principal import Principal
from app.models.task import TaskStatus
from app.schemas.dashboard import OperatorDashboard
from app.schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskFilter,
    TaskResponse,
    StatusUpdate,
    StatusChangeResponse,
    PriorityUpdate,
    TransferRequest,
    WorkLogSummary,
    FileUploadResponse,
)
from app.services import task_service
from app.services.dashboard_service import operator_dashboard
from app.services.file_store import FileStore, FileUpload, get_file_store
from app.services.task_status import set_task_status

router = APIRouter(prefix="/tasks", tags=["tasks"])


def read_upload(file: UploadFile) -> FileUpload:
    content = file.file.read()
    return FileUpload(
        filename=file.filename or "file",
        content=content,
        content_type=file.content_type or "application/octet-stream",
    )


def task_create_form(
    title: str = Form(...),
    notes: Optional[str] = Form(None),
    due_date: Optional[datetime] = Form(None),
    priority: str = Form("MEDIUM"),
    assigned_hours: Optional[int] = Form(None),
    assignee_user_id: Optional[int] = Form(None),
    assignee_employee_id: Optional[int] = Form(None)
) -> TaskCreate:
    """TaskCreate built from multipart form fields"""
    try:
        return TaskCreate(
            title=title,
            notes=notes,
            due_date=due_date,
            priority=priority,
            assigned_hours=assigned_hours,
            assignee_user_id=assignee_user_id,
            assignee_employee_id=assignee_employee_id,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return task_service.create_task(db, principal, task_data)


@router.post("/with-file", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task_with_file(
    task_data: TaskCreate = Depends(task_create_form),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    file_store: FileStore = Depends(get_file_store)
):
    """Create a task from a multipart form, optionally attaching the manager file."""
    upload = read_upload(file) if file is not None else None
    return task_service.create_task(db, principal, task_data, upload=upload, file_store=file_store)


@router.get("", response_model=List[TaskResponse])
def list_tasks(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    assignee_id: Optional[int] = Query(None),
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    created_by_id: Optional[int] = Query(None)
):
    task_filter = TaskFilter(assignee_id=assignee_id, status=status_filter, created_by_id=created_by_id)
    return task_service.list_tasks(db, principal, task_filter)


@router.get("/dashboard", response_model=OperatorDashboard)
def dashboard(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return operator_dashboard(db, principal)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return task_service.get_task(db, principal, task_id)


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    task_data: TaskUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return task_service.update_task(db, principal, task_id, task_data)


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    task_service.soft_delete_task(db, principal, task_id)
    return {"message": "Task deleted successfully"}


@router.patch("/{task_id}/status", response_model=StatusChangeResponse)
def update_status(
    task_id: int,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    task = set_task_status(db, principal, task_id, body.status)
    return {"message": "Status updated successfully", "task": task}


@router.patch("/{task_id}/priority", response_model=TaskResponse)
def update_priority(
    task_id: int,
    body: PriorityUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return task_service.set_task_priority(db, principal, task_id, body.priority)


@router.post("/{task_id}/transfer", response_model=TaskResponse)
def transfer_task(
    task_id: int,
    body: TransferRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return task_service.transfer_task(
        db, principal, task_id,
        new_assignee_user_id=body.new_assignee_user_id,
        new_employee_id=body.new_employee_id,
    )


@router.get("/{task_id}/work-logs", response_model=WorkLogSummary)
def work_logs(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    logs = task_service.list_work_logs(db, principal, task_id)
    return {"logs": logs, "total_hours": task_service.worked_hours(logs)}


@router.post("/{task_id}/manager-file", response_model=TaskResponse)
def upload_manager_file(
    task_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    file_store: FileStore = Depends(get_file_store)
):
    upload = read_upload(file)
    return task_service.update_task(db, principal, task_id, TaskUpdate(), upload=upload, file_store=file_store)


@router.post("/{task_id}/upload", response_model=FileUploadResponse)
def upload_operator_file(
    task_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    file_store: FileStore = Depends(get_file_store)
):
    upload = read_upload(file)
    task = task_service.upload_operator_file(db, principal, task_id, upload, file_store)
    return {"message": "File uploaded successfully", "file_url": task.file_url_operator}
