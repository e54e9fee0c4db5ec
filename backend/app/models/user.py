from sqlalchemy import Column, String, Text, DateTime, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.database import Base
from app.models.base import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # User id assigned by the identity provider; the only key its webhooks carry
    external_id = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    image_url = Column(Text)
    banner_url = Column(Text)
    banner_key = Column(String(255))  # storage file key, needed to delete the old banner
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    videos = relationship("Video", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    playlists = relationship("Playlist", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
