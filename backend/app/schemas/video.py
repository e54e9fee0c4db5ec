from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.video import VideoStatus, VideoVisibility
from app.schemas.user import UserSummary, VideoOwner


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    visibility: Optional[VideoVisibility] = None


class VideoResponse(BaseModel):
    id: UUID
    user_id: UUID
    category_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    visibility: VideoVisibility

    # Transcoding state
    mux_status: VideoStatus
    mux_upload_id: Optional[str] = None
    mux_asset_id: Optional[str] = None
    mux_playback_id: Optional[str] = None
    mux_track_id: Optional[str] = None
    mux_track_status: Optional[str] = None

    thumbnail_url: Optional[str] = None
    preview_url: Optional[str] = None
    duration: int = 0  # milliseconds
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VideoCardResponse(VideoResponse):
    """Video list item with owner and engagement counts."""
    user: UserSummary
    view_count: int = 0
    like_count: int = 0
    dislike_count: int = 0


class LikedVideoResponse(VideoCardResponse):
    liked_at: datetime


class HistoryVideoResponse(VideoCardResponse):
    viewed_at: datetime


class VideoDetailResponse(VideoResponse):
    user: VideoOwner
    view_count: int = 0
    like_count: int = 0
    dislike_count: int = 0
    viewer_reaction: Optional[str] = None  # like, dislike


class StudioVideoResponse(VideoResponse):
    view_count: int = 0
    comment_count: int = 0
    like_count: int = 0


class VideoUploadResponse(BaseModel):
    video: VideoResponse
    upload_url: str
