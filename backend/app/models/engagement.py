"""
Engagement records keyed by (actor, target).

Each table uses its composite primary key as the uniqueness constraint that
upserts resolve conflicts against. ``updated_at`` doubles as the sort key
for the liked-videos, history and subscriptions lists.
"""
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from app.database import Base
from app.models.base import utcnow


class ReactionType(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class VideoReaction(Base):
    __tablename__ = "video_reactions"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
    type = Column(String(10), nullable=False)  # like, dislike
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class CommentReaction(Base):
    __tablename__ = "comment_reactions"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    comment_id = Column(Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True)
    type = Column(String(10), nullable=False)  # like, dislike
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class VideoView(Base):
    __tablename__ = "video_views"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class Subscription(Base):
    __tablename__ = "subscriptions"

    viewer_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    creator_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
