from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.pagination import CursorPage
from app.schemas.user import UserSummary


class CommentCreate(BaseModel):
    video_id: UUID
    parent_id: Optional[UUID] = None
    value: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: UUID
    parent_id: Optional[UUID] = None
    video_id: UUID
    user_id: UUID
    value: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentItemResponse(CommentResponse):
    user: UserSummary
    like_count: int = 0
    dislike_count: int = 0
    reply_count: int = 0
    viewer_reaction: Optional[str] = None


class CommentPage(CursorPage[CommentItemResponse]):
    total_count: int = 0
