from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.core.auth import get_current_principal
from app.core.database import get_db
from app.core.principal import Principal
from app.schemas.dashboard import EmployeePerformance
from app.schemas.employee import EmployeeCreate, EmployeeResponse, TeamResponse
from app.schemas.task import TaskResponse
from app.services import employee_service
from app.services.dashboard_service import employee_performance
from app.services.task_service import completed_tasks_for_employee

router = APIRouter(prefix="/employees", tags=["employees"])


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
def create_employee(
    body: EmployeeCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return employee_service.create_employee(db, principal, body)


@router.get("", response_model=TeamResponse)
def my_team(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    team = employee_service.list_team(db, principal)
    completed = sum(1 for member in team for t in member["tasks"] if t.status == "DONE")
    return {"employees": team, "completed_count": completed}


@router.get("/me", response_model=EmployeeResponse)
def my_profile(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return employee_service.my_profile(db, principal)


@router.get("/{employee_id}/performance", response_model=EmployeePerformance)
def performance(
    employee_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return employee_performance(db, principal, employee_id)


@router.get("/{employee_id}/completed", response_model=List[TaskResponse])
def completed_tasks(
    employee_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return completed_tasks_for_employee(db, principal, employee_id)
