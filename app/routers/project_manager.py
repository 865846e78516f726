from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.auth import get_current_principal
from app.core.database import get_db
from app.core.principal import Principal
from app.schemas.employee import EmployeeResponse, AssignEmployeeRequest
from app.services import employee_service

router = APIRouter(prefix="/project-manager", tags=["project-manager"])


@router.get("/new-joiners", response_model=List[EmployeeResponse])
def new_joiners(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Operators not yet attached to any manager."""
    return employee_service.list_new_joiners(db, principal)


@router.post("/assign", response_model=EmployeeResponse)
def assign(
    body: AssignEmployeeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return employee_service.assign_employee(
        db, principal, body.employee_id, body.manager_user_id,
        name=body.name, department=body.department,
    )
