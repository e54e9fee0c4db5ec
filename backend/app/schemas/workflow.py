from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel


class WorkflowTriggerResponse(BaseModel):
    workflow_run_id: str


class WorkflowRunResponse(BaseModel):
    id: str
    workflow: str
    status: str  # running, completed, failed
    user_id: UUID
    video_id: UUID
    error: Optional[str] = None
    result: Optional[Any] = None
    created_at: datetime
    updated_at: datetime
