from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional, List

from app.schemas.task import TaskResponse


class EmployeeCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    role_title: Optional[str] = None
    department: Optional[str] = None


class EmployeeResponse(BaseModel):
    id: int
    user_id: int
    name: str
    role_title: Optional[str]
    department: Optional[str]
    status: Optional[str]
    manager_id: Optional[int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TeamMember(BaseModel):
    id: int
    name: str
    role_title: Optional[str]
    email: str
    tasks: List[TaskResponse]


class TeamResponse(BaseModel):
    employees: List[TeamMember]
    completed_count: int


class AssignEmployeeRequest(BaseModel):
    employee_id: int
    manager_user_id: int
    name: Optional[str] = None
    department: Optional[str] = None
