from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentAuthor(BaseModel):
    id: int
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    id: int
    task_id: int
    author_id: int
    content: str
    seen_by_assignee: bool
    seen_by_manager: bool
    created_at: datetime
    author: CommentAuthor

    model_config = ConfigDict(from_attributes=True)


class MarkSeenResponse(BaseModel):
    message: str
    updated: int
