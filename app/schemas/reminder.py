from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ReminderItem(BaseModel):
    id: int
    title: str
    due_date: datetime
    days_remaining: int
    status: str  # Upcoming / Due Today / Overdue
    original_status: str
    priority: str


class DismissRequest(BaseModel):
    task_id: int


class SnoozeRequest(BaseModel):
    task_id: int
    snooze_hours: Optional[int] = Field(default=None)


class ReminderActionResponse(BaseModel):
    message: str
    snooze_until: Optional[datetime] = None
