from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class ReactionResponse(BaseModel):
    """The caller's reaction after a toggle; None when toggled off."""
    target_id: UUID
    reaction: Optional[str] = None


class ViewResponse(BaseModel):
    video_id: UUID
    user_id: UUID
    created: bool


class SubscriptionStatus(BaseModel):
    creator_id: UUID
    subscribed: bool
