"""Per-user reminder overlay"""

from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint

from app.core.calendar import utcnow
from app.core.database import Base


class ReminderStatus(str, Enum):
    PENDING = "PENDING"
    DISMISSED = "DISMISSED"
    SNOOZED = "SNOOZED"


class TaskReminder(Base):
    __tablename__ = "task_reminders"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="uq_task_reminder_task_user"),)

    id = Column(Integer, primary_key=True, index=True)
    # weak reference: the task may be soft-deleted underneath
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, default=ReminderStatus.PENDING.value, nullable=False)
    snooze_until = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
