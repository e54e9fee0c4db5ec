"""
Playlists owned by the caller, plus the liked-videos and watch-history
lists.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError

from app.dependencies import ProtectedContext
from app.limiter import actor_rate_limit, limiter
from app.models import Playlist, PlaylistVideo, ReactionType, Video, VideoReaction, VideoView
from app.schemas.pagination import CursorPage
from app.schemas.playlist import (
    PlaylistCreate,
    PlaylistForVideoResponse,
    PlaylistItemResponse,
    PlaylistResponse,
    PlaylistVideoResponse,
)
from app.schemas.video import HistoryVideoResponse, LikedVideoResponse, VideoCardResponse
from app.services.pagination import PageQuery, paginate
from app.services.video_queries import (
    card_fields,
    playlist_thumbnail,
    playlist_video_count,
    public_video_cards,
)

router = APIRouter()


async def get_owned_playlist(ctx, playlist_id: UUID) -> Playlist:
    result = await ctx.db.execute(
        select(Playlist).where(Playlist.id == playlist_id, Playlist.user_id == ctx.user.id)
    )
    playlist = result.scalar_one_or_none()
    if not playlist:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Playlist not found"
        )
    return playlist


async def _require_video(ctx, video_id: UUID) -> Video:
    video = await ctx.db.get(Video, video_id)
    if not video:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found"
        )
    return video


def _playlist_items(video_id: Optional[UUID] = None):
    columns = [
        Playlist,
        playlist_video_count().label("video_count"),
        playlist_thumbnail().label("thumbnail_url"),
    ]
    if video_id is not None:
        columns.append(
            exists().where(
                PlaylistVideo.playlist_id == Playlist.id,
                PlaylistVideo.video_id == video_id,
            ).correlate(Playlist).label("contains_video")
        )
    return select(*columns)


def _playlist_fields(row) -> dict:
    return {
        **PlaylistResponse.model_validate(row.Playlist).model_dump(),
        "video_count": row.video_count,
        "thumbnail_url": row.thumbnail_url,
    }


@router.get("/playlists", response_model=CursorPage[PlaylistItemResponse])
@limiter.limit(actor_rate_limit)
async def list_playlists(request: Request, ctx: ProtectedContext, page_params: PageQuery):
    query = _playlist_items().where(Playlist.user_id == ctx.user.id)
    page = await paginate(ctx.db, query, sort_column=Playlist.updated_at, id_column=Playlist.id, params=page_params)
    return CursorPage[PlaylistItemResponse](
        items=[PlaylistItemResponse(**_playlist_fields(row)) for row in page.rows],
        next_cursor=page.next_cursor,
    )


@router.post("/playlists", response_model=PlaylistResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(actor_rate_limit)
async def create_playlist(request: Request, data: PlaylistCreate, ctx: ProtectedContext):
    playlist = Playlist(user_id=ctx.user.id, name=data.name, description=data.description)
    ctx.db.add(playlist)
    await ctx.db.commit()
    await ctx.db.refresh(playlist)
    return playlist


@router.get("/playlists/liked", response_model=CursorPage[LikedVideoResponse])
@limiter.limit(actor_rate_limit)
async def list_liked_videos(request: Request, ctx: ProtectedContext, page_params: PageQuery):
    """Public videos the caller liked, most recently liked first."""
    query = (
        public_video_cards()
        .add_columns(VideoReaction.updated_at.label("liked_at"))
        .join(VideoReaction, VideoReaction.video_id == Video.id)
        .where(
            VideoReaction.user_id == ctx.user.id,
            VideoReaction.type == ReactionType.LIKE.value,
        )
    )
    page = await paginate(ctx.db, query, sort_column=VideoReaction.updated_at, id_column=Video.id, params=page_params)
    return CursorPage[LikedVideoResponse](
        items=[LikedVideoResponse(**card_fields(row), liked_at=row.liked_at) for row in page.rows],
        next_cursor=page.next_cursor,
    )


@router.get("/playlists/history", response_model=CursorPage[HistoryVideoResponse])
@limiter.limit(actor_rate_limit)
async def list_history(request: Request, ctx: ProtectedContext, page_params: PageQuery):
    """Public videos the caller watched, most recently viewed first."""
    query = (
        public_video_cards()
        .add_columns(VideoView.updated_at.label("viewed_at"))
        .join(VideoView, VideoView.video_id == Video.id)
        .where(VideoView.user_id == ctx.user.id)
    )
    page = await paginate(ctx.db, query, sort_column=VideoView.updated_at, id_column=Video.id, params=page_params)
    return CursorPage[HistoryVideoResponse](
        items=[HistoryVideoResponse(**card_fields(row), viewed_at=row.viewed_at) for row in page.rows],
        next_cursor=page.next_cursor,
    )


@router.get("/playlists/for-video/{video_id}", response_model=CursorPage[PlaylistForVideoResponse])
@limiter.limit(actor_rate_limit)
async def list_playlists_for_video(
    request: Request,
    video_id: UUID,
    ctx: ProtectedContext,
    page_params: PageQuery,
):
    """The caller's playlists, flagged with whether each already holds the video."""
    query = _playlist_items(video_id).where(Playlist.user_id == ctx.user.id)
    page = await paginate(ctx.db, query, sort_column=Playlist.updated_at, id_column=Playlist.id, params=page_params)
    return CursorPage[PlaylistForVideoResponse](
        items=[
            PlaylistForVideoResponse(**_playlist_fields(row), contains_video=bool(row.contains_video))
            for row in page.rows
        ],
        next_cursor=page.next_cursor,
    )


@router.get("/playlists/{playlist_id}", response_model=PlaylistResponse)
@limiter.limit(actor_rate_limit)
async def get_playlist(request: Request, playlist_id: UUID, ctx: ProtectedContext):
    return await get_owned_playlist(ctx, playlist_id)


@router.delete("/playlists/{playlist_id}", response_model=PlaylistResponse)
@limiter.limit(actor_rate_limit)
async def delete_playlist(request: Request, playlist_id: UUID, ctx: ProtectedContext):
    playlist = await get_owned_playlist(ctx, playlist_id)
    deleted = PlaylistResponse.model_validate(playlist)
    await ctx.db.execute(delete(Playlist).where(Playlist.id == playlist.id))
    await ctx.db.commit()
    return deleted


@router.get("/playlists/{playlist_id}/videos", response_model=CursorPage[VideoCardResponse])
@limiter.limit(actor_rate_limit)
async def list_playlist_videos(
    request: Request,
    playlist_id: UUID,
    ctx: ProtectedContext,
    page_params: PageQuery,
):
    await get_owned_playlist(ctx, playlist_id)

    query = (
        public_video_cards()
        .join(PlaylistVideo, PlaylistVideo.video_id == Video.id)
        .where(PlaylistVideo.playlist_id == playlist_id)
    )
    page = await paginate(ctx.db, query, sort_column=Video.updated_at, id_column=Video.id, params=page_params)
    return CursorPage[VideoCardResponse](
        items=[VideoCardResponse(**card_fields(row)) for row in page.rows],
        next_cursor=page.next_cursor,
    )


@router.post(
    "/playlists/{playlist_id}/videos/{video_id}",
    response_model=PlaylistVideoResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(actor_rate_limit)
async def add_video(request: Request, playlist_id: UUID, video_id: UUID, ctx: ProtectedContext):
    await get_owned_playlist(ctx, playlist_id)
    await _require_video(ctx, video_id)

    entry = PlaylistVideo(playlist_id=playlist_id, video_id=video_id)
    ctx.db.add(entry)
    try:
        await ctx.db.commit()
    except IntegrityError:
        await ctx.db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Video is already in this playlist"
        )
    await ctx.db.refresh(entry)
    return entry


@router.delete("/playlists/{playlist_id}/videos/{video_id}", response_model=PlaylistVideoResponse)
@limiter.limit(actor_rate_limit)
async def remove_video(request: Request, playlist_id: UUID, video_id: UUID, ctx: ProtectedContext):
    await get_owned_playlist(ctx, playlist_id)
    await _require_video(ctx, video_id)

    result = await ctx.db.execute(
        select(PlaylistVideo).where(
            PlaylistVideo.playlist_id == playlist_id,
            PlaylistVideo.video_id == video_id,
        )
    )
    entry = result.scalar_one_or_none()
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video is not in this playlist"
        )

    removed = PlaylistVideoResponse.model_validate(entry)
    await ctx.db.delete(entry)
    await ctx.db.commit()
    return removed
