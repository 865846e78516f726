"""
Access rules for task, comment, reminder and employee operations.

Every rule is a pure function of the principal and the ownership fields of
the resource (created_by_id, assignee_id); nothing here touches the DB.
Existence is checked by the caller first, so a missing resource is reported
as NOT_FOUND before any of these rules runs.
"""

from dataclasses import dataclass
from typing import Optional

from app.core.errors import ForbiddenError
from app.core.principal import Principal, Role


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def require(decision: Decision) -> None:
    if not decision.allowed:
        raise ForbiddenError(decision.reason)


def _is_creator(principal: Principal, task) -> bool:
    return task.created_by_id == principal.id


def _is_assignee(principal: Principal, task) -> bool:
    return task.assignee_id is not None and task.assignee_id == principal.id


# ---------- tasks ----------

def can_create_task(principal: Principal) -> Decision:
    if principal.is_management:
        return ALLOW
    return deny("Only managers can create tasks")


def can_edit_task(principal: Principal, task) -> Decision:
    # content, assignee and manager file: any management principal
    if principal.is_management:
        return ALLOW
    return deny("Only managers can edit tasks")


def can_set_status(principal: Principal, task) -> Decision:
    if principal.is_management or _is_assignee(principal, task):
        return ALLOW
    return deny("Not allowed to change the status of this task")


def can_set_priority(principal: Principal, task) -> Decision:
    if principal.is_management or _is_assignee(principal, task):
        return ALLOW
    return deny("Not allowed to change the priority of this task")


def can_delete_task(principal: Principal, task) -> Decision:
    if principal.is_management and _is_creator(principal, task):
        return ALLOW
    return deny("Not authorized to delete this task")


def can_transfer_task(principal: Principal, task) -> Decision:
    if principal.is_management:
        return ALLOW
    return deny("Only managers can transfer tasks")


def can_view_task(principal: Principal, task) -> Decision:
    if principal.is_management or _is_assignee(principal, task) or _is_creator(principal, task):
        return ALLOW
    return deny("Not allowed to view this task")


def can_upload_operator_file(principal: Principal, task) -> Decision:
    if principal.is_management or _is_assignee(principal, task):
        return ALLOW
    return deny("Not allowed to upload files to this task")


def listing_scope(principal: Principal) -> Optional[int]:
    """Assignee every listing is pinned to, or None when all tasks are visible."""
    if principal.is_management:
        return None
    return principal.id


# ---------- comments ----------

def can_access_comments(principal: Principal, task) -> Decision:
    if _is_creator(principal, task) or _is_assignee(principal, task):
        return ALLOW
    return deny("Not authorized")


def seen_flag_for(principal: Principal, task) -> Optional[str]:
    """Comment flag the principal owns on this task: the assignee side wins."""
    if _is_assignee(principal, task):
        return "seen_by_assignee"
    if _is_creator(principal, task):
        return "seen_by_manager"
    return None


# ---------- people ----------

def can_manage_employees(principal: Principal) -> Decision:
    if principal.is_management:
        return ALLOW
    return deny("Only managers can manage employees")


def can_assign_employees(principal: Principal) -> Decision:
    if principal.role == Role.PROJECT_MANAGER:
        return ALLOW
    return deny("Only project managers can assign employees")


def can_view_performance(principal: Principal) -> Decision:
    if principal.is_management:
        return ALLOW
    return deny("Only managers can view performance data")


def can_view_operator_dashboard(principal: Principal) -> Decision:
    if principal.role == Role.OPERATOR:
        return ALLOW
    return deny("Dashboard is available to operators only")
