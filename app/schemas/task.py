"""Pydantic schemas for task request/response validation."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Optional, List

from app.core.calendar import to_naive_utc
from app.models.task import TaskStatus, TaskPriority


def _normalise_due_date(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value is not None else None


def _upper(value):
    return value.upper() if isinstance(value, str) else value


class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_hours: Optional[int] = Field(default=None, ge=0)
    assignee_user_id: Optional[int] = None
    assignee_employee_id: Optional[int] = None

    @field_validator("due_date")
    @classmethod
    def normalise_due_date(cls, value):
        return _normalise_due_date(value)

    @field_validator("priority", mode="before")
    @classmethod
    def upper_priority(cls, value):
        return _upper(value)


class TaskUpdate(BaseModel):
    """Partial update: only the fields present in the payload are applied."""

    title: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    assigned_hours: Optional[int] = Field(default=None, ge=0)
    assignee_user_id: Optional[int] = None
    assignee_employee_id: Optional[int] = None

    @field_validator("due_date")
    @classmethod
    def normalise_due_date(cls, value):
        return _normalise_due_date(value)

    @field_validator("priority", mode="before")
    @classmethod
    def upper_priority(cls, value):
        return _upper(value)


class TaskFilter(BaseModel):
    assignee_id: Optional[int] = None
    created_by_id: Optional[int] = None
    status: Optional[TaskStatus] = None
    include_deleted: bool = False

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, value):
        return _upper(value)


class StatusUpdate(BaseModel):
    status: TaskStatus

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, value):
        return _upper(value)


class PriorityUpdate(BaseModel):
    priority: TaskPriority

    @field_validator("priority", mode="before")
    @classmethod
    def upper_priority(cls, value):
        return _upper(value)


class TransferRequest(BaseModel):
    new_assignee_user_id: Optional[int] = None
    new_employee_id: Optional[int] = None


class TaskResponse(BaseModel):
    id: int
    title: str
    notes: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime]
    assigned_hours: Optional[int]
    created_by_id: int
    assignee_id: Optional[int]
    file_url_manager: Optional[str]
    file_url_operator: Optional[str]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusChangeResponse(BaseModel):
    message: str
    task: TaskResponse


class WorkLogResponse(BaseModel):
    id: int
    task_id: int
    user_id: int
    start_time: datetime
    end_time: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class WorkLogSummary(BaseModel):
    logs: List[WorkLogResponse]
    total_hours: float


class FileUploadResponse(BaseModel):
    message: str
    file_url: str
