from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.auth import get_current_principal
from app.core.database import get_db
from app.core.principal import Principal
from app.schemas.comment import CommentCreate, CommentResponse, MarkSeenResponse
from app.services import comment_service

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("/{task_id}", response_model=CommentResponse)
def add_comment(
    task_id: int,
    body: CommentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return comment_service.add_comment(db, principal, task_id, body.content)


@router.get("/{task_id}", response_model=List[CommentResponse])
def list_comments(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return comment_service.list_comments(db, principal, task_id)


@router.patch("/{task_id}/seen", response_model=MarkSeenResponse)
def mark_seen(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    updated = comment_service.mark_comments_seen(db, principal, task_id)
    return {"message": "Comments marked as seen", "updated": updated}
