"""
Video endpoints: feeds, single video, owner mutations, engagement and
title/description generation.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, status
from sqlalchemy import or_, select

from app.dependencies import Context, ProtectedContext
from app.limiter import actor_rate_limit, limiter
from app.models import Category, ReactionType, Subscription, Video, VideoStatus, VideoVisibility
from app.schemas.engagement import ReactionResponse, ViewResponse
from app.schemas.pagination import CursorPage
from app.schemas.user import VideoOwner
from app.schemas.video import (
    VideoCardResponse,
    VideoDetailResponse,
    VideoResponse,
    VideoUpdate,
    VideoUploadResponse,
)
from app.schemas.workflow import WorkflowTriggerResponse
from app.services import engagement, mux, storage, transcoding, workflow
from app.services.errors import ProviderError
from app.services.pagination import CountPageQuery, PageQuery, paginate
from app.services.video_queries import (
    card_fields,
    public_video_cards,
    video_cards,
    subscriber_count,
    view_count,
    viewer_subscribed,
    viewer_video_reaction,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_owned_video(ctx, video_id: UUID) -> Video:
    """Load a video owned by the caller; NOT_FOUND otherwise."""
    result = await ctx.db.execute(
        select(Video).where(Video.id == video_id, Video.user_id == ctx.user.id)
    )
    video = result.scalar_one_or_none()
    if not video:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found"
        )
    return video


async def get_video_or_404(ctx, video_id: UUID) -> Video:
    video = await ctx.db.get(Video, video_id)
    if not video:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found"
        )
    return video


def _card_page(page) -> CursorPage[VideoCardResponse]:
    return CursorPage[VideoCardResponse](
        items=[VideoCardResponse(**card_fields(row)) for row in page.rows],
        next_cursor=page.next_cursor,
    )


@router.get("/videos", response_model=CursorPage[VideoCardResponse])
async def list_videos(
    ctx: Context,
    page_params: PageQuery,
    category_id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None),
):
    """Public home feed, newest first."""
    query = public_video_cards()
    if category_id:
        query = query.where(Video.category_id == category_id)
    if user_id:
        query = query.where(Video.user_id == user_id)

    page = await paginate(ctx.db, query, sort_column=Video.updated_at, id_column=Video.id, params=page_params)
    return _card_page(page)


@router.get("/videos/subscribed", response_model=CursorPage[VideoCardResponse])
@limiter.limit(actor_rate_limit)
async def list_subscribed_videos(
    request: Request,
    ctx: ProtectedContext,
    page_params: PageQuery,
):
    """Public videos from creators the caller subscribes to."""
    query = (
        public_video_cards()
        .join(Subscription, Subscription.creator_id == Video.user_id)
        .where(Subscription.viewer_id == ctx.user.id)
    )
    page = await paginate(ctx.db, query, sort_column=Video.updated_at, id_column=Video.id, params=page_params)
    return _card_page(page)


@router.get("/videos/trending", response_model=CursorPage[VideoCardResponse])
async def list_trending_videos(
    ctx: Context,
    page_params: CountPageQuery,
):
    """Public videos by view count; cursors carry the view count."""
    page = await paginate(ctx.db, public_video_cards(), sort_column=view_count(), id_column=Video.id, params=page_params)
    return _card_page(page)


@router.get("/videos/{video_id}", response_model=VideoDetailResponse)
async def get_video(video_id: UUID, ctx: Context):
    """Single video with owner, counts and the viewer's own reaction/subscription."""
    viewer_id = ctx.user.id if ctx.user else None

    # Private videos are visible to their owner only
    visible = Video.visibility == VideoVisibility.PUBLIC.value
    if viewer_id:
        visible = or_(visible, Video.user_id == viewer_id)

    query = (
        video_cards()
        .add_columns(
            subscriber_count().label("subscriber_count"),
            viewer_subscribed(viewer_id).label("viewer_subscribed"),
            viewer_video_reaction(viewer_id).label("viewer_reaction"),
        )
        .where(Video.id == video_id, visible)
    )
    result = await ctx.db.execute(query)
    row = result.first()

    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found"
        )

    fields = card_fields(row)
    fields["user"] = VideoOwner(
        **fields["user"].model_dump(),
        subscriber_count=row.subscriber_count,
        viewer_subscribed=bool(row.viewer_subscribed),
    )
    return VideoDetailResponse(**fields, viewer_reaction=row.viewer_reaction)


@router.get("/videos/{video_id}/suggestions", response_model=CursorPage[VideoCardResponse])
async def list_suggestions(
    video_id: UUID,
    ctx: Context,
    page_params: PageQuery,
):
    """Other public videos from the same category."""
    video = await get_video_or_404(ctx, video_id)

    query = public_video_cards().where(Video.id != video.id)
    if video.category_id:
        query = query.where(Video.category_id == video.category_id)

    page = await paginate(ctx.db, query, sort_column=Video.updated_at, id_column=Video.id, params=page_params)
    return _card_page(page)


@router.post("/videos", response_model=VideoUploadResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(actor_rate_limit)
async def create_video(request: Request, ctx: ProtectedContext):
    """Open a Mux direct upload and create the video in ``waiting``."""
    try:
        upload = await mux.create_upload(str(ctx.user.id), cors_origin="*")
    except ProviderError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create upload: {e}"
        )

    video = Video(
        user_id=ctx.user.id,
        title="Untitled",
        mux_status=VideoStatus.WAITING.value,
        mux_upload_id=upload.upload_id,
    )
    ctx.db.add(video)
    await ctx.db.commit()
    await ctx.db.refresh(video)

    logger.info(f"User {ctx.user.id} created video {video.id} (upload {upload.upload_id})")
    return VideoUploadResponse(video=VideoResponse.model_validate(video), upload_url=upload.url)


@router.put("/videos/{video_id}", response_model=VideoResponse)
@limiter.limit(actor_rate_limit)
async def update_video(
    request: Request,
    video_id: UUID,
    data: VideoUpdate,
    ctx: ProtectedContext,
):
    """Owner edit of title, description, category and visibility."""
    video = await get_owned_video(ctx, video_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("category_id") is not None:
        if not await ctx.db.get(Category, changes["category_id"]):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found"
            )
    if changes.get("title") is None:
        changes.pop("title", None)
    if changes.get("visibility") is not None:
        changes["visibility"] = changes["visibility"].value
    else:
        changes.pop("visibility", None)

    for field, value in changes.items():
        setattr(video, field, value)

    await ctx.db.commit()
    await ctx.db.refresh(video)
    return video


@router.delete("/videos/{video_id}", response_model=VideoResponse)
@limiter.limit(actor_rate_limit)
async def delete_video(request: Request, video_id: UUID, ctx: ProtectedContext):
    """Delete an owned video, then clean up its Mux asset and stored thumbnail."""
    video = await get_owned_video(ctx, video_id)
    deleted = VideoResponse.model_validate(video)
    asset_id, thumbnail_key = video.mux_asset_id, video.thumbnail_key

    await ctx.db.delete(video)
    await ctx.db.commit()

    # Best effort: the row is already gone
    if asset_id:
        try:
            await mux.delete_asset(asset_id)
        except ProviderError as e:
            logger.warning(f"Failed to delete Mux asset {asset_id} for video {video_id}: {e}")
    if thumbnail_key:
        try:
            await storage.delete_files([thumbnail_key])
        except ProviderError as e:
            logger.warning(f"Failed to delete thumbnail {thumbnail_key} for video {video_id}: {e}")

    return deleted


@router.post("/videos/{video_id}/revalidate", response_model=VideoResponse)
@limiter.limit(actor_rate_limit)
async def revalidate_video(request: Request, video_id: UUID, ctx: ProtectedContext):
    """Pull the current upload/asset state from Mux."""
    video = await get_owned_video(ctx, video_id)
    try:
        return await transcoding.revalidate(ctx.db, video)
    except ProviderError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to revalidate video: {e}"
        )


@router.post("/videos/{video_id}/restore-thumbnail", response_model=VideoResponse)
@limiter.limit(actor_rate_limit)
async def restore_thumbnail(request: Request, video_id: UUID, ctx: ProtectedContext):
    """Replace a custom thumbnail with the one Mux generated."""
    video = await get_owned_video(ctx, video_id)

    if not video.mux_playback_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Video has no playback ID"
        )

    try:
        if video.thumbnail_key:
            await storage.delete_files([video.thumbnail_key])
            video.thumbnail_key = None
            video.thumbnail_url = None
        uploaded = await storage.upload_from_url(mux.thumbnail_url(video.mux_playback_id))
    except ProviderError as e:
        await ctx.db.commit()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to restore thumbnail: {e}"
        )

    video.thumbnail_key = uploaded.key
    video.thumbnail_url = uploaded.url
    await ctx.db.commit()
    await ctx.db.refresh(video)
    return video


async def _trigger_generation(ctx, video_id: UUID, name: str, background_tasks: BackgroundTasks):
    video = await get_owned_video(ctx, video_id)
    run_id = workflow.trigger(name, ctx.user.id, video.id, background_tasks)
    return WorkflowTriggerResponse(workflow_run_id=run_id)


@router.post(
    "/videos/{video_id}/generate-title",
    response_model=WorkflowTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit(actor_rate_limit)
async def generate_title(
    request: Request,
    video_id: UUID,
    ctx: ProtectedContext,
    background_tasks: BackgroundTasks,
):
    """Start the title generation workflow; poll ``/workflows/{run_id}``."""
    return await _trigger_generation(ctx, video_id, "generate-title", background_tasks)


@router.post(
    "/videos/{video_id}/generate-description",
    response_model=WorkflowTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit(actor_rate_limit)
async def generate_description(
    request: Request,
    video_id: UUID,
    ctx: ProtectedContext,
    background_tasks: BackgroundTasks,
):
    return await _trigger_generation(ctx, video_id, "generate-description", background_tasks)


@router.post("/videos/{video_id}/views", response_model=ViewResponse)
@limiter.limit(actor_rate_limit)
async def record_view(request: Request, video_id: UUID, ctx: ProtectedContext):
    """Record that the caller watched a video; repeat views are no-ops."""
    await get_video_or_404(ctx, video_id)
    created = await engagement.record_view(ctx.db, ctx.user.id, video_id)
    return ViewResponse(video_id=video_id, user_id=ctx.user.id, created=created)


async def _react(ctx, video_id: UUID, reaction: ReactionType) -> ReactionResponse:
    await get_video_or_404(ctx, video_id)
    current = await engagement.toggle_video_reaction(ctx.db, ctx.user.id, video_id, reaction)
    return ReactionResponse(target_id=video_id, reaction=current)


@router.post("/videos/{video_id}/like", response_model=ReactionResponse)
@limiter.limit(actor_rate_limit)
async def like_video(request: Request, video_id: UUID, ctx: ProtectedContext):
    """Toggle a like; liking an already liked video removes the like."""
    return await _react(ctx, video_id, ReactionType.LIKE)


@router.post("/videos/{video_id}/dislike", response_model=ReactionResponse)
@limiter.limit(actor_rate_limit)
async def dislike_video(request: Request, video_id: UUID, ctx: ProtectedContext):
    return await _react(ctx, video_id, ReactionType.DISLIKE)
