from fastapi import APIRouter, HTTPException, Request, status

from app.dependencies import CurrentUser
from app.limiter import actor_rate_limit, limiter
from app.schemas.workflow import WorkflowRunResponse
from app.services import workflow

router = APIRouter()


@router.get("/workflows/{run_id}", response_model=WorkflowRunResponse)
@limiter.limit(actor_rate_limit)
async def get_workflow_run(request: Request, run_id: str, current_user: CurrentUser):
    """State of a generation run started by the caller."""
    run = workflow.get_run(run_id)
    if not run or run["user_id"] != str(current_user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workflow run not found"
        )
    return run
