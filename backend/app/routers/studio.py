"""
Creator studio: the caller's own videos regardless of visibility or status.
"""
from uuid import UUID

from fastapi import APIRouter, Request
from sqlalchemy import select

from app.dependencies import ProtectedContext
from app.limiter import actor_rate_limit, limiter
from app.models import ReactionType, Video
from app.routers.videos import get_owned_video
from app.schemas.pagination import CursorPage
from app.schemas.video import StudioVideoResponse, VideoResponse
from app.services.pagination import PageQuery, paginate
from app.services.video_queries import video_comment_count, video_reaction_count, view_count

router = APIRouter()


@router.get("/studio/videos", response_model=CursorPage[StudioVideoResponse])
@limiter.limit(actor_rate_limit)
async def list_studio_videos(
    request: Request,
    ctx: ProtectedContext,
    page_params: PageQuery,
):
    query = (
        select(
            Video,
            view_count().label("view_count"),
            video_comment_count().label("comment_count"),
            video_reaction_count(ReactionType.LIKE).label("like_count"),
        )
        .where(Video.user_id == ctx.user.id)
    )
    page = await paginate(ctx.db, query, sort_column=Video.updated_at, id_column=Video.id, params=page_params)

    items = []
    for row in page.rows:
        video = VideoResponse.model_validate(row.Video)
        items.append(StudioVideoResponse(
            **video.model_dump(),
            view_count=row.view_count,
            comment_count=row.comment_count,
            like_count=row.like_count,
        ))
    return CursorPage[StudioVideoResponse](items=items, next_cursor=page.next_cursor)


@router.get("/studio/videos/{video_id}", response_model=VideoResponse)
@limiter.limit(actor_rate_limit)
async def get_studio_video(request: Request, video_id: UUID, ctx: ProtectedContext):
    return await get_owned_video(ctx, video_id)
