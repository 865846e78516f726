from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from app.core.calendar import utcnow
from app.core.database import Base
from app.models.user import User


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(String, nullable=False)
    seen_by_assignee = Column(Boolean, default=False, nullable=False)
    seen_by_manager = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    task = relationship("Task", back_populates="comments")
    author = relationship(User)
