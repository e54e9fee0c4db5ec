import enum
import uuid

from sqlalchemy import Column, String, Text, DateTime, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.models.base import utcnow


class VideoVisibility(str, enum.Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class VideoStatus(str, enum.Enum):
    WAITING = "waiting"
    PROCESSING = "processing"
    READY = "ready"
    ERRORED = "errored"


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="SET NULL"))
    title = Column(String(500), nullable=False)
    description = Column(Text)
    visibility = Column(String(10), nullable=False, default=VideoVisibility.PRIVATE.value)  # private, public

    # Transcoding job state, reconciled from Mux webhooks
    mux_status = Column(String(20), nullable=False, default=VideoStatus.WAITING.value)  # waiting, processing, ready, errored
    mux_upload_id = Column(String(255), unique=True)
    mux_asset_id = Column(String(255), unique=True)
    mux_playback_id = Column(String(255), unique=True)
    mux_track_id = Column(String(255), unique=True)
    mux_track_status = Column(String(20))

    # Stored files (UploadThing keys are kept so replaced files can be deleted)
    thumbnail_url = Column(Text)
    thumbnail_key = Column(String(255))
    preview_url = Column(Text)
    preview_key = Column(String(255))

    duration = Column(Integer, nullable=False, default=0)  # milliseconds
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="videos")
    category = relationship("Category", back_populates="videos")
    comments = relationship("Comment", back_populates="video", cascade="all, delete-orphan", passive_deletes=True)
