from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class UserSummary(BaseModel):
    """Owner/author block embedded in videos and comments."""
    id: UUID
    name: str
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: UUID
    external_id: str
    name: str
    image_url: Optional[str] = None
    banner_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserProfileResponse(BaseModel):
    id: UUID
    name: str
    image_url: Optional[str] = None
    banner_url: Optional[str] = None
    created_at: datetime
    video_count: int = 0
    subscriber_count: int = 0
    viewer_subscribed: bool = False

    model_config = {"from_attributes": True}


class VideoOwner(UserSummary):
    subscriber_count: int = 0
    viewer_subscribed: bool = False


class SubscriptionResponse(BaseModel):
    creator_id: UUID
    viewer_id: UUID
    updated_at: datetime
    user: VideoOwner
