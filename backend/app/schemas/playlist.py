from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class PlaylistResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PlaylistItemResponse(PlaylistResponse):
    video_count: int = 0
    thumbnail_url: Optional[str] = None  # most recently added video


class PlaylistForVideoResponse(PlaylistItemResponse):
    contains_video: bool = False


class PlaylistVideoResponse(BaseModel):
    playlist_id: UUID
    video_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
