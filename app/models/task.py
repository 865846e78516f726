"""Task model and its lifecycle enums"""

from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from app.core.calendar import utcnow
from app.core.database import Base
from app.models.comment import TaskComment
from app.models.work_log import TaskWorkLog


class TaskStatus(str, Enum):
    TODO = "TODO"
    WORKING = "WORKING"
    STUCK = "STUCK"
    DONE = "DONE"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    notes = Column(String, nullable=True)
    status = Column(String, default=TaskStatus.TODO.value, nullable=False, index=True)
    priority = Column(String, default=TaskPriority.MEDIUM.value, nullable=False)
    due_date = Column(DateTime, nullable=True, index=True)
    assigned_hours = Column(Integer, nullable=True)

    # immutable once set
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    file_url_manager = Column(String, nullable=True)
    file_url_operator = Column(String, nullable=True)

    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    work_logs = relationship(
        TaskWorkLog, back_populates="task", cascade="all, delete-orphan",
        order_by="TaskWorkLog.start_time",
    )
    comments = relationship(
        TaskComment, back_populates="task", cascade="all, delete-orphan",
        order_by="TaskComment.created_at",
    )
