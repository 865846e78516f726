"""Employee profile model"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.calendar import utcnow
from app.core.database import Base
from app.models.user import User


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    role_title = Column(String, default="Operator")
    department = Column(String, nullable=True)
    status = Column(String, default="Active")
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship(User, foreign_keys=[user_id])
