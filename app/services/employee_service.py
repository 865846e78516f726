"""Employees: provisioning operators, manager teams and project-manager assignment."""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from app.core import permissions
from app.core.database import unit_of_work
from app.core.errors import NotFoundError, ValidationError
from app.core.principal import Principal, Role, MANAGEMENT_ROLES
from app.models.employee import Employee
from app.models.task import Task
from app.models.user import User
from app.schemas.employee import EmployeeCreate
from app.services import task_repository as repo

logger = logging.getLogger(__name__)


def email_taken(db: Session, email: str) -> bool:
    return db.query(User).filter(User.email == email).first() is not None


def create_employee(db: Session, principal: Principal, data: EmployeeCreate) -> Employee:
    permissions.require(permissions.can_manage_employees(principal))

    if email_taken(db, data.email):
        raise ValidationError("Email already in use")

    with unit_of_work(db, "create employee"):
        user = User(email=data.email, role=Role.OPERATOR.value)
        user.set_password(data.password)
        db.add(user)
        try:
            db.flush()
        except IntegrityError as e:
            # created concurrently since the check above
            raise ValidationError("Email already in use") from e

        employee = Employee(
            user_id=user.id,
            name=data.name,
            role_title=data.role_title or "Operator",
            department=data.department,
            manager_id=principal.id,
        )
        db.add(employee)
    db.refresh(employee)
    logger.info(f"Employee {employee.id} created under manager {principal.id}")
    return employee


def my_profile(db: Session, principal: Principal) -> Employee:
    employee = db.query(Employee).filter(Employee.user_id == principal.id).first()
    if employee is None:
        raise NotFoundError("Employee profile not found")
    return employee


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def list_team(db: Session, principal: Principal) -> List[dict]:
    """Employees managed by the caller, each with their live tasks."""
    permissions.require(permissions.can_manage_employees(principal))

    employees = db.query(Employee).filter(
        Employee.manager_id == principal.id
    ).order_by(Employee.name).all()

    team = []
    for employee in employees:
        tasks = repo.task_query(db).filter(
            Task.assignee_id == employee.user_id
        ).order_by(Task.due_date.asc(), Task.id.asc()).all()
        team.append({
            "id": employee.id,
            "name": employee.name,
            "role_title": employee.role_title,
            "email": employee.user.email,
            "tasks": tasks,
        })
    return team


def list_new_joiners(db: Session, principal: Principal) -> List[Employee]:
    permissions.require(permissions.can_assign_employees(principal))

    return db.query(Employee).join(User, Employee.user_id == User.id).filter(
        Employee.manager_id.is_(None),
        User.role == Role.OPERATOR.value,
    ).order_by(Employee.created_at.desc(), Employee.id.desc()).all()


def assign_employee(
    db: Session,
    principal: Principal,
    employee_id: int,
    manager_user_id: int,
    name: Optional[str] = None,
    department: Optional[str] = None,
) -> Employee:
    permissions.require(permissions.can_assign_employees(principal))

    manager = db.query(User).filter(
        User.id == manager_user_id,
        User.role.in_([r.value for r in MANAGEMENT_ROLES]),
    ).first()
    if manager is None:
        raise NotFoundError("Target Manager not found")

    employee = db.query(Employee).join(User, Employee.user_id == User.id).filter(
        Employee.id == employee_id,
        User.role == Role.OPERATOR.value,
    ).first()
    if employee is None:
        raise NotFoundError("Employee (operator) not found")

    with unit_of_work(db, "assign employee"):
        employee.manager_id = manager.id
        if name:
            employee.name = name
        if department:
            employee.department = department
    db.refresh(employee)
    logger.info(f"Employee {employee.id} assigned to manager {manager.id} by {principal.id}")
    return employee
