"""
Durable, retryable multi-step workflows.

A run is a sequence of named steps. Each step is retried with exponential
backoff; once a step succeeds its result is stored against the run id and
is returned as-is if the run is executed again. ``WorkflowAbort`` ends the
run immediately without retrying.

Run state lives in the workflow cache (Redis when configured). A new run is
executed as a FastAPI background task; runs left in ``running`` by a process
that went away are picked up again by ``resume_loop``. A lease per run keeps
two executors off the same run.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select, update

from app.config import get_settings
from app.database import async_session_maker
from app.models.video import Video
from app.services import generation
from app.services.generation import DESCRIPTION_SYSTEM_PROMPT, TITLE_SYSTEM_PROMPT
from app.services.mux import transcript_url
from app.utils.cache import workflow_lease_cache, workflow_run_cache, workflow_step_cache

logger = logging.getLogger(__name__)

RUN_RUNNING = "running"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"


class WorkflowAbort(Exception):
    """Non-retryable step failure; the run fails immediately."""
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkflowContext:
    def __init__(self, run_id: str):
        self.run_id = run_id
        settings = get_settings()
        self.max_attempts = max(1, settings.workflow_max_attempts)
        self.backoff_seconds = settings.workflow_retry_backoff_seconds
        self.ttl_seconds = settings.workflow_run_ttl_seconds
        self.lease_seconds = settings.workflow_lease_seconds

    async def run(self, step_name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """
        Execute one step at most once per run.

        The step's return value must be JSON serializable.
        """
        step_key = f"{self.run_id}:{step_name}"
        stored = workflow_step_cache.get(step_key)
        if stored is not None:
            logger.debug(f"Workflow {self.run_id}: step {step_name} already done")
            return stored["result"]

        attempt = 1
        while True:
            try:
                result = await fn()
                break
            except WorkflowAbort:
                raise
            except Exception as e:
                if attempt >= self.max_attempts:
                    logger.error(f"Workflow {self.run_id}: step {step_name} failed after {attempt} attempts: {e}")
                    raise
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(f"Workflow {self.run_id}: step {step_name} attempt {attempt} failed ({e}), retrying in {delay}s")
                await asyncio.sleep(delay)
                attempt += 1

        workflow_step_cache.set(step_key, {"result": result}, ttl_seconds=self.ttl_seconds)
        workflow_lease_cache.set(self.run_id, _now(), ttl_seconds=self.lease_seconds)
        return result


async def _generate_video_field(ctx: WorkflowContext, payload: dict, field: str, system_prompt: str) -> str:
    video_id = UUID(payload["video_id"])
    user_id = UUID(payload["user_id"])

    async def get_video():
        async with async_session_maker() as db:
            result = await db.execute(
                select(Video).where(Video.id == video_id, Video.user_id == user_id)
            )
            video = result.scalar_one_or_none()
        if video is None:
            raise WorkflowAbort("Video not found")
        return {
            "id": str(video.id),
            "user_id": str(video.user_id),
            "mux_playback_id": video.mux_playback_id,
            "mux_track_id": video.mux_track_id,
        }

    video = await ctx.run("get-video", get_video)

    async def get_transcript():
        if not video["mux_playback_id"] or not video["mux_track_id"]:
            raise WorkflowAbort("Video has no transcript track")
        text = await generation.fetch_transcript(
            transcript_url(video["mux_playback_id"], video["mux_track_id"])
        )
        if not text or not text.strip():
            raise WorkflowAbort("Transcript is empty")
        return text

    transcript = await ctx.run("get-transcript", get_transcript)

    async def generate():
        text = await generation.generate_text(system_prompt, transcript)
        if not text:
            raise WorkflowAbort("Generation returned no content")
        return text

    generated = await ctx.run(f"generate-{field}", generate)

    async def update_video():
        async with async_session_maker() as db:
            await db.execute(
                update(Video)
                .where(Video.id == video_id, Video.user_id == user_id)
                .values({field: generated})
            )
            await db.commit()
        return True

    await ctx.run("update-video", update_video)
    return generated


async def generate_title(ctx: WorkflowContext, payload: dict) -> str:
    return await _generate_video_field(ctx, payload, "title", TITLE_SYSTEM_PROMPT)


async def generate_description(ctx: WorkflowContext, payload: dict) -> str:
    return await _generate_video_field(ctx, payload, "description", DESCRIPTION_SYSTEM_PROMPT)


WORKFLOWS: dict[str, Callable[[WorkflowContext, dict], Awaitable[Any]]] = {
    "generate-title": generate_title,
    "generate-description": generate_description,
}


def get_run(run_id: str) -> Optional[dict]:
    return workflow_run_cache.get(run_id)


def _save_run(run: dict) -> None:
    run["updated_at"] = _now()
    workflow_run_cache.set(run["id"], run, ttl_seconds=get_settings().workflow_run_ttl_seconds)


async def execute_run(run_id: str) -> Optional[dict]:
    """
    Execute (or resume) a run; completed steps are not repeated.

    The run's lease must be free: if another task or process is already
    executing it, the stored state is returned untouched.
    """
    run = get_run(run_id)
    if run is None:
        logger.warning(f"Workflow run {run_id} not found")
        return None
    if run["status"] != RUN_RUNNING:
        return run

    settings = get_settings()
    if not workflow_lease_cache.add(run_id, _now(), ttl_seconds=settings.workflow_lease_seconds):
        logger.info(f"Workflow run {run_id} is already executing")
        return run

    workflow = WORKFLOWS[run["workflow"]]
    ctx = WorkflowContext(run_id)
    payload = {"user_id": run["user_id"], "video_id": run["video_id"]}

    try:
        run["result"] = await workflow(ctx, payload)
        run["status"] = RUN_COMPLETED
        logger.info(f"Workflow {run['workflow']} run {run_id} completed")
    except WorkflowAbort as e:
        run["status"] = RUN_FAILED
        run["error"] = str(e)
        logger.warning(f"Workflow {run['workflow']} run {run_id} aborted: {e}")
    except Exception as e:
        run["status"] = RUN_FAILED
        run["error"] = str(e)
        logger.error(f"Workflow {run['workflow']} run {run_id} failed: {e}")
    finally:
        _save_run(run)
        workflow_lease_cache.delete(run_id)

    return run


async def resume_pending_runs() -> list[str]:
    """
    Pick up runs left in ``running`` with no live lease, e.g. after a restart.

    Returns the ids of the runs that were resumed.
    """
    resumed = []
    for run_id in workflow_run_cache.keys():
        run = get_run(run_id)
        if run is None or run["status"] != RUN_RUNNING:
            continue
        if workflow_lease_cache.get(run_id) is not None:
            continue
        logger.info(f"Resuming workflow {run['workflow']} run {run_id}")
        await execute_run(run_id)
        resumed.append(run_id)
    return resumed


async def resume_loop(interval_seconds: int) -> None:
    """Periodically resume orphaned runs; started by the app lifespan."""
    while True:
        try:
            await resume_pending_runs()
        except Exception as e:
            logger.error(f"Resuming workflow runs failed: {e}")
        await asyncio.sleep(interval_seconds)


def trigger(
    workflow: str,
    user_id: UUID,
    video_id: UUID,
    background_tasks: BackgroundTasks,
) -> str:
    """Record a new run and schedule it; returns the run id immediately."""
    if workflow not in WORKFLOWS:
        raise ValueError(f"Unknown workflow: {workflow}")

    run_id = str(uuid.uuid4())
    now = _now()
    run = {
        "id": run_id,
        "workflow": workflow,
        "status": RUN_RUNNING,
        "user_id": str(user_id),
        "video_id": str(video_id),
        "error": None,
        "result": None,
        "created_at": now,
        "updated_at": now,
    }
    _save_run(run)
    background_tasks.add_task(execute_run, run_id)
    logger.info(f"Triggered workflow {workflow} run {run_id} for video {video_id}")
    return run_id
