from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MuxEvent(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class IdentityEvent(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class UploadMetadata(BaseModel):
    user_id: UUID
    video_id: Optional[UUID] = None


class UploadedFile(BaseModel):
    key: str
    url: str


class UploadCallback(BaseModel):
    metadata: UploadMetadata
    file: UploadedFile
