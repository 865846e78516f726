from pydantic import BaseModel
from typing import List

from app.schemas.task import TaskResponse
from app.schemas.employee import EmployeeResponse


class TrendPoint(BaseModel):
    week: str
    rate: int


class TaskStats(BaseModel):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    pending_tasks: int
    stuck_tasks: int
    completion_rate: int
    completion_trend: List[TrendPoint]


class OperatorDashboard(BaseModel):
    tasks: List[TaskResponse]
    stats: TaskStats


class PerformanceSummary(BaseModel):
    total_tasks: int
    completed: int
    working: int
    stuck: int
    completion_rate: int
    assigned_hours: int
    logged_hours: float


class EmployeePerformance(BaseModel):
    employee: EmployeeResponse
    email: str
    performance: PerformanceSummary
