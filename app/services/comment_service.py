"""Task comments and the per-party seen flags."""

from typing import List
from sqlalchemy.orm import Session
import logging

from app.core import permissions
from app.core.database import unit_of_work
from app.core.errors import ForbiddenError, ValidationError
from app.core.principal import Principal
from app.models.comment import TaskComment
from app.services import task_repository as repo

logger = logging.getLogger(__name__)


def add_comment(db: Session, principal: Principal, task_id: int, content: str) -> TaskComment:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_access_comments(principal, task))
    if not content or not content.strip():
        raise ValidationError("content is required")

    # the other party has not seen it yet; the author trivially has
    is_creator = principal.id == task.created_by_id
    is_assignee = principal.id == task.assignee_id
    with unit_of_work(db, "add comment"):
        comment = TaskComment(
            task_id=task.id,
            author_id=principal.id,
            content=content,
            seen_by_assignee=not is_creator,
            seen_by_manager=not is_assignee,
        )
        db.add(comment)
    db.refresh(comment)
    return comment


def list_comments(db: Session, principal: Principal, task_id: int) -> List[TaskComment]:
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_access_comments(principal, task))
    return db.query(TaskComment).filter(
        TaskComment.task_id == task.id
    ).order_by(TaskComment.created_at, TaskComment.id).all()


def mark_comments_seen(db: Session, principal: Principal, task_id: int) -> int:
    """Mark the whole thread read for the caller's side; returns rows touched."""
    task = repo.get_task(db, task_id)
    flag = permissions.seen_flag_for(principal, task)
    if flag is None:
        raise ForbiddenError("Not authorized")

    with unit_of_work(db, "mark comments seen"):
        updated = db.query(TaskComment).filter(
            TaskComment.task_id == task.id
        ).update({getattr(TaskComment, flag): True}, synchronize_session="fetch")
    logger.debug(f"Marked {updated} comment(s) on task {task.id} as {flag}")
    return updated
